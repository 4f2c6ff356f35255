"""Configuración del scheduler con APScheduler."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from app.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

# Scheduler global
_scheduler: AsyncIOScheduler | None = None


def create_scheduler() -> AsyncIOScheduler:
    """Crea un scheduler con la zona horaria configurada (o la local del host)."""
    return AsyncIOScheduler(
        timezone=settings.tz or None,
        job_defaults={
            "coalesce": True,  # Combinar ejecuciones perdidas
            "max_instances": 1,  # Una sola instancia por job
            "misfire_grace_time": settings.scheduler_misfire_grace_time,
        },
    )


def get_scheduler() -> AsyncIOScheduler:
    """Obtiene la instancia del scheduler."""
    global _scheduler
    if _scheduler is None:
        _scheduler = create_scheduler()
    return _scheduler


def start_scheduler() -> AsyncIOScheduler:
    """Arranca el scheduler si no está corriendo."""
    scheduler = get_scheduler()
    if not scheduler.running:
        scheduler.start()
        logger.info(f"Scheduler iniciado (timezone={scheduler.timezone})")
    return scheduler


def shutdown_scheduler() -> None:
    """Detiene el scheduler."""
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("Scheduler detenido")
    _scheduler = None
