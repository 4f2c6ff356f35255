"""
JobRegistry - Timers vivos indexados por ID de recordatorio.

Cada recordatorio tiene exactamente un job de APScheduler con un
CronTrigger construido directamente desde su TimePattern.
"""

import logging
from datetime import datetime, tzinfo
from typing import Any, Callable

from apscheduler.events import EVENT_JOB_MISSED, JobExecutionEvent
from apscheduler.job import Job
from apscheduler.jobstores.base import ConflictingIdError, JobLookupError
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.util import convert_to_datetime

from app.domain.time_pattern import TimePattern
from app.utils.errors import DuplicateJobError

logger = logging.getLogger(__name__)

JOB_ID_PREFIX = "reminder:"


def build_trigger(pattern: TimePattern, timezone: tzinfo | str | None = None) -> CronTrigger:
    """Construye el CronTrigger (resolución de un segundo) de un patrón."""
    return CronTrigger(timezone=timezone, **pattern.to_trigger_kwargs())


def next_fire_time(
    pattern: TimePattern,
    now: datetime | None = None,
    timezone: tzinfo | str | None = None,
) -> datetime | None:
    """Próximo disparo del patrón después de `now`, None si ya no dispara."""
    trigger = build_trigger(pattern, timezone)
    if now is None:
        now = datetime.now(trigger.timezone)
    else:
        now = convert_to_datetime(now, trigger.timezone, "now")
    return trigger.get_next_fire_time(None, now)


def job_id_for(reminder_id: str) -> str:
    return f"{JOB_ID_PREFIX}{reminder_id}"


def reminder_id_for(job_id: str) -> str | None:
    """Inverso de job_id_for; None si el job no es de un recordatorio."""
    if not job_id.startswith(JOB_ID_PREFIX):
        return None
    return job_id[len(JOB_ID_PREFIX):]


class JobRegistry:
    """
    Mapa id -> job vivo. Dueño del alta y baja de cada timer.

    Cuando APScheduler descarta una ejecución por misfire (loop bloqueado,
    host suspendido) el callback nunca corre; on_missed recibe el ID para
    que el dueño decida qué hacer con el recordatorio.
    """

    def __init__(self, scheduler: BaseScheduler):
        self.scheduler = scheduler
        self._jobs: dict[str, Job] = {}
        self.on_missed: Callable[[str], None] | None = None
        scheduler.add_listener(self._handle_missed, EVENT_JOB_MISSED)

    def _handle_missed(self, event: JobExecutionEvent) -> None:
        reminder_id = reminder_id_for(event.job_id)
        if reminder_id is None or reminder_id not in self._jobs:
            return

        logger.warning(f"Ejecución perdida del job {reminder_id} ({event.scheduled_run_time})")
        if self.on_missed is not None:
            self.on_missed(reminder_id)

    def schedule(
        self,
        reminder_id: str,
        pattern: TimePattern,
        on_fire: Callable[[], Any],
    ) -> Job:
        """
        Arranca un timer nuevo para el recordatorio.

        Raises:
            DuplicateJobError: si ya hay un timer vivo con ese ID
        """
        if reminder_id in self._jobs:
            raise DuplicateJobError(reminder_id)

        try:
            job = self.scheduler.add_job(
                on_fire,
                build_trigger(pattern, self.scheduler.timezone),
                id=job_id_for(reminder_id),
                name=f"Reminder {reminder_id}",
                replace_existing=False,
            )
        except ConflictingIdError as e:
            raise DuplicateJobError(reminder_id) from e

        self._jobs[reminder_id] = job
        logger.info(f"Job programado: {reminder_id} ({'one-shot' if pattern.is_one_shot else 'recurrente'})")
        return job

    def cancel(self, reminder_id: str) -> bool:
        """Detiene y elimina el timer; False si no existía."""
        job = self._jobs.pop(reminder_id, None)
        if job is None:
            return False

        try:
            self.scheduler.remove_job(job.id)
        except JobLookupError:
            # APScheduler ya quitó el job al agotar su trigger (one-shot disparado)
            logger.debug(f"Job {reminder_id} ya no estaba en el scheduler")

        logger.info(f"Job eliminado: {reminder_id}")
        return True

    def get(self, reminder_id: str) -> Job | None:
        return self._jobs.get(reminder_id)

    def ids(self) -> set[str]:
        return set(self._jobs)

    def count(self) -> int:
        """Número de timers vivos."""
        return len(self._jobs)

    def next_run_time(self, reminder_id: str) -> datetime | None:
        """Próxima ejecución del job (None si no existe o aún está pendiente)."""
        job = self._jobs.get(reminder_id)
        if job is None:
            return None
        # Un job pendiente (scheduler sin arrancar) aún no tiene next_run_time
        return getattr(job, "next_run_time", None)
