"""Servicio que orquesta recordatorios persistidos y timers vivos."""

import logging
from datetime import datetime
from enum import Enum
from functools import partial
from typing import Callable, Protocol

from app.db.repositories.reminders import ReminderStore
from app.domain.entities.reminder import Reminder, RemovalResult, generate_id
from app.domain.time_pattern import FieldValue, TimePattern
from app.scheduler.registry import JobRegistry, next_fire_time
from app.utils.errors import (
    ConsistencyFault,
    ErrorCategory,
    NotFoundError,
    log_error,
)

logger = logging.getLogger(__name__)

# Intentos para conseguir un ID libre antes de rendirse
MAX_ID_ATTEMPTS = 5


class Notifier(Protocol):
    """Capacidad de envío hacia una sala de chat."""

    async def send(self, room: str, text: str) -> None: ...


class LifecycleState(str, Enum):
    """Estado de la reconciliación brain -> timers."""

    UNINITIALIZED = "uninitialized"
    WAITING = "waiting"
    RECONCILED = "reconciled"


def format_notification(reminder: Reminder) -> str:
    """Texto que se envía a la sala cuando dispara un recordatorio."""
    return f"@{reminder.user} REMINDER: {reminder.message}"


class ReminderService:
    """
    Servicio para gestionar recordatorios.

    Mantiene la biyección entre el ReminderStore (durable) y el JobRegistry
    (timers vivos):
    - add: persiste primero, luego arranca el timer
    - remove: detiene el timer primero, luego borra el registro
    - un one-shot se borra a sí mismo después de disparar

    Todo corre en el mismo event loop (comandos y callbacks del scheduler),
    por eso no hay locks.
    """

    def __init__(
        self,
        store: ReminderStore,
        registry: JobRegistry,
        notifier: Notifier,
        id_factory: Callable[[], str] = generate_id,
    ):
        self.store = store
        self.registry = registry
        self.notifier = notifier
        self.id_factory = id_factory
        self.state = LifecycleState.UNINITIALIZED
        registry.on_missed = self._on_timer_missed

    # ==================== LIFECYCLE ====================

    def initialize(self) -> None:
        """
        Prepara la reconciliación con el brain.

        La reconciliación corre una sola vez por proceso, en la primera
        señal "ready" del brain (o de inmediato si el brain ya cargó).
        """
        if self.state == LifecycleState.RECONCILED:
            logger.info("Recordatorios ya reconciliados, initialize() no hace nada")
            return

        logger.info("Inicializando capa de persistencia de recordatorios")
        self.store.reset()
        self.store.brain.on_ready(self._on_brain_ready)
        self.state = LifecycleState.WAITING

        if self.store.brain.loaded:
            self._on_brain_ready()

    def _on_brain_ready(self) -> None:
        # "ready" puede llegar varias veces; solo la primera cuenta
        if self.state == LifecycleState.RECONCILED:
            logger.debug("Señal ready repetida, se ignora")
            return

        self._reconcile()
        self.state = LifecycleState.RECONCILED

    def _reconcile(self) -> None:
        """Recrea los timers de todos los recordatorios persistidos."""
        reminders = self.store.load()
        restored = 0

        for reminder in reminders:
            if self.registry.get(reminder.id) is not None:
                continue

            if reminder.is_one_shot and self._has_expired(reminder):
                self._drop(reminder, ConsistencyFault(
                    "One-shot reminder expired while the service was down",
                    reminder.id,
                ))
                continue

            try:
                t = reminder.time
                self.add(
                    t.seconds, t.minutes, t.hours, t.monthday, t.month, t.weekday, t.year,
                    reminder.message, reminder.room, reminder.user,
                    reminder_id=reminder.id,
                )
                restored += 1
            except Exception as e:
                self._drop(reminder, ConsistencyFault(
                    f"Could not restore timer: {e}", reminder.id
                ))

        fixed = self.check_consistency()
        logger.info(
            f"Reconciliación completa: {restored} timers restaurados, "
            f"{len(reminders) - restored} descartados, {fixed} inconsistencias corregidas"
        )

    def _has_expired(self, reminder: Reminder) -> bool:
        return next_fire_time(reminder.time, timezone=self.registry.scheduler.timezone) is None

    def _drop(self, reminder: Reminder, fault: ConsistencyFault) -> None:
        """Descarta un recordatorio roto sin tumbar el resto."""
        log_error(fault, "reminder_reconcile")
        self.registry.cancel(reminder.id)
        self.store.remove_by_id(reminder.id)

    def check_consistency(self) -> int:
        """
        Verifica la biyección store <-> registry y elimina huérfanos.

        Returns:
            Número de entradas corregidas
        """
        store_ids = {reminder.id for reminder in self.store.list()}
        timer_ids = self.registry.ids()
        fixed = 0

        for reminder_id in timer_ids - store_ids:
            log_error(ConsistencyFault("Timer without a stored reminder", reminder_id), "check_consistency")
            self.registry.cancel(reminder_id)
            fixed += 1

        for reminder_id in store_ids - timer_ids:
            log_error(ConsistencyFault("Stored reminder without a timer", reminder_id), "check_consistency")
            self.store.remove_by_id(reminder_id)
            fixed += 1

        return fixed

    # ==================== OPERATIONS ====================

    def add(
        self,
        seconds: FieldValue,
        minutes: FieldValue,
        hours: FieldValue,
        monthday: FieldValue,
        month: FieldValue,
        weekday: FieldValue,
        year: FieldValue,
        message: str,
        room: str,
        user: str,
        reminder_id: str | None = None,
    ) -> str:
        """
        Agrega un recordatorio y arranca su timer.

        Sin reminder_id se genera uno nuevo y el recordatorio se persiste
        antes de arrancar el timer. Con reminder_id (reconciliación) el
        registro ya es durable y solo se arranca el timer.

        Returns:
            ID del recordatorio
        """
        pattern = TimePattern(
            seconds=seconds,
            minutes=minutes,
            hours=hours,
            monthday=monthday,
            month=month,
            weekday=weekday,
            year=year,
        )
        return self.add_pattern(pattern, message, room, user, reminder_id=reminder_id)

    def add_pattern(
        self,
        pattern: TimePattern,
        message: str,
        room: str,
        user: str,
        reminder_id: str | None = None,
    ) -> str:
        """Igual que add() pero con un TimePattern ya construido."""
        persisted = reminder_id is None
        if persisted:
            reminder_id = self._new_id()

        reminder = Reminder(id=reminder_id, time=pattern, message=message, room=room, user=user)

        if persisted:
            self.store.append(reminder)

        try:
            self.registry.schedule(reminder.id, pattern, partial(self._fire, reminder))
        except Exception:
            if persisted:
                # Sin timer no debe quedar registro durable
                self.store.remove_by_id(reminder.id)
            raise

        logger.info(f"Recordatorio agregado: {reminder.id} para {reminder.user} en {reminder.room}")
        return reminder.id

    def remove(self, reminder_id: str) -> RemovalResult:
        """
        Elimina un recordatorio: primero el timer, luego el registro.

        Nunca lanza por un ID desconocido; retorna found=False.
        """
        reminder = self.store.get(reminder_id)
        if reminder is None or self.registry.get(reminder_id) is None:
            logger.info(f"Recordatorio no encontrado: {reminder_id}")
            return RemovalResult(found=False, id=reminder_id)

        self.registry.cancel(reminder_id)
        self.store.remove_by_id(reminder_id)

        logger.info(f"Recordatorio eliminado: {reminder_id}")
        return RemovalResult(found=True, id=reminder_id)

    def get(self, reminder_id: str) -> Reminder:
        """
        Busca un recordatorio por ID.

        Raises:
            NotFoundError: si no existe
        """
        reminder = self.store.get(reminder_id)
        if reminder is None:
            raise NotFoundError(reminder_id)
        return reminder

    def list(self) -> list[Reminder]:
        """Todos los recordatorios persistidos, en orden de creación."""
        return self.store.list()

    def count(self) -> int:
        """Número de timers vivos."""
        return self.registry.count()

    def next_run_time(self, reminder_id: str) -> datetime | None:
        return self.registry.next_run_time(reminder_id)

    # ==================== FIRE ====================

    async def _fire(self, reminder: Reminder) -> None:
        """
        Callback del timer: notifica y, si es one-shot, se borra.

        No propaga errores al scheduler para no afectar otros timers.
        """
        try:
            await self.notifier.send(reminder.room, format_notification(reminder))
            logger.info(f"Recordatorio disparado: {reminder.id}")
        except Exception as e:
            log_error(e, "reminder_fire", ErrorCategory.API_TELEGRAM, {"reminder_id": reminder.id})

        if not reminder.is_one_shot:
            return

        try:
            result = self.remove(reminder.id)
            if not result.found:
                logger.warning(f"One-shot {reminder.id} ya no estaba registrado al disparar")
        except Exception as e:
            log_error(e, "reminder_self_remove", ErrorCategory.STORAGE, {"reminder_id": reminder.id})

    def _on_timer_missed(self, reminder_id: str) -> None:
        """
        El scheduler descartó una ejecución sin llamar a _fire.

        Un one-shot ya no volverá a disparar: se elimina para no dejar un
        timer muerto contado como vivo. Un recurrente sigue con su próxima
        ejecución.
        """
        reminder = self.store.get(reminder_id)
        if reminder is None or not reminder.is_one_shot:
            return

        log_error(
            ConsistencyFault("One-shot reminder missed its run time", reminder_id),
            "reminder_missed",
        )
        try:
            self.remove(reminder_id)
        except Exception as e:
            log_error(e, "reminder_missed", ErrorCategory.STORAGE, {"reminder_id": reminder_id})

    # ==================== HELPERS ====================

    def _new_id(self) -> str:
        for _ in range(MAX_ID_ATTEMPTS):
            reminder_id = self.id_factory()
            if self.store.get(reminder_id) is None and self.registry.get(reminder_id) is None:
                return reminder_id
            logger.warning(f"Colisión de ID {reminder_id}, generando otro")
        raise ConsistencyFault(f"Could not generate a free id after {MAX_ID_ATTEMPTS} attempts")


# Singleton
_reminder_service: ReminderService | None = None


def get_reminder_service() -> ReminderService:
    """Obtiene la instancia del servicio de recordatorios."""
    global _reminder_service
    if _reminder_service is None:
        from app.config import get_settings
        from app.db.brain import Brain
        from app.scheduler.setup import get_scheduler
        from app.services.telegram import get_telegram_service

        settings = get_settings()
        store = ReminderStore(Brain(), settings.brain_key)
        _reminder_service = ReminderService(
            store=store,
            registry=JobRegistry(get_scheduler()),
            notifier=get_telegram_service(),
        )
    return _reminder_service


def reset_reminder_service() -> None:
    """Descarta el singleton (al apagar la app)."""
    global _reminder_service
    _reminder_service = None
