"""
Reminder Bot

FastAPI application: recordatorios persistentes disparados por APScheduler
y comandos "remind ..." por Telegram.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.utils.errors import NotFoundError

# Configurar logging
settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle de la aplicación."""
    logger.info("=" * 50)
    logger.info("Iniciando Reminder Bot")
    logger.info("=" * 50)

    # ==================== STARTUP ====================

    # 1. Inicializar base de datos
    logger.info("Inicializando base de datos...")
    from app.db.database import init_db
    init_db()

    # 2. Arrancar scheduler
    logger.info("Inicializando scheduler...")
    from app.scheduler.setup import start_scheduler
    start_scheduler()

    # 3. Reconciliar recordatorios persistidos con timers
    logger.info("Cargando recordatorios del brain...")
    from app.services.reminder_service import get_reminder_service
    service = get_reminder_service()
    service.initialize()
    service.store.brain.load()
    logger.info(f"{service.count()} recordatorios corriendo")

    # 4. Inicializar bot de Telegram
    if settings.telegram_bot_token:
        logger.info("Inicializando bot de Telegram...")
        from app.bot.handlers import initialize_bot
        await initialize_bot()
    else:
        logger.warning("TELEGRAM_BOT_TOKEN no configurado, bot deshabilitado")

    logger.info("=" * 50)
    logger.info("Reminder Bot listo!")
    logger.info("=" * 50)

    yield

    # ==================== SHUTDOWN ====================

    logger.info("Deteniendo Reminder Bot...")

    # Detener bot
    from app.bot.handlers import shutdown_bot
    await shutdown_bot()

    # Detener scheduler
    from app.scheduler.setup import shutdown_scheduler
    shutdown_scheduler()

    from app.services.reminder_service import reset_reminder_service
    reset_reminder_service()

    # Cerrar conexiones de BD
    from app.db.database import close_db
    close_db()

    logger.info("Reminder Bot detenido.")


# Crear aplicación FastAPI
app = FastAPI(
    title="Reminder Bot",
    description="Recordatorios únicos y recurrentes para salas de chat",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(
        status_code=404,
        content={"status": "error", "message": exc.message},
    )


# ==================== ROUTES ====================


@app.get("/health")
async def health_check():
    """Health check básico."""
    return {"status": "healthy", "service": "reminder-bot"}


@app.get("/health/detailed")
async def health_check_detailed():
    """Health check detallado."""
    from app.db.database import check_db_connection
    from app.services.reminder_service import get_reminder_service

    service = get_reminder_service()
    running = service.count()
    persisted = len(service.list())
    db_ok = check_db_connection()

    return {
        "status": "healthy" if db_ok and running == persisted else "degraded",
        "service": "reminder-bot",
        "version": "1.0.0",
        "environment": settings.app_env,
        "checks": {
            "database": {"status": "ok" if db_ok else "error"},
            "reminders": {
                "state": service.state.value,
                "running": running,
                "persisted": persisted,
                "consistent": running == persisted,
            },
        },
    }


@app.post("/telegram/webhook")
async def telegram_webhook(request: Request):
    """Webhook para mensajes de Telegram."""
    from telegram import Update
    from app.bot.handlers import get_application

    try:
        data = await request.json()
        telegram_app = await get_application()

        update = Update.de_json(data, telegram_app.bot)
        await telegram_app.process_update(update)

        return {"status": "ok"}

    except Exception as e:
        logger.exception(f"Error en webhook: {e}")
        return JSONResponse(
            status_code=500,
            content={"status": "error", "message": str(e)}
        )


def _reminder_payload(service, reminder) -> dict:
    from app.utils.text import describe_pattern

    next_run = service.next_run_time(reminder.id)
    return {
        **reminder.to_dict(),
        "one_shot": reminder.is_one_shot,
        "schedule": describe_pattern(reminder.time),
        "next_run": next_run.isoformat() if next_run else None,
    }


@app.get("/admin/reminders")
async def get_reminders(room: str | None = None):
    """Lista los recordatorios persistidos (opcionalmente de una sala)."""
    from app.services.reminder_service import get_reminder_service

    service = get_reminder_service()
    reminders = [
        _reminder_payload(service, reminder)
        for reminder in service.list()
        if room is None or reminder.room == room
    ]
    return {"reminders": reminders, "running": service.count()}


@app.get("/admin/reminders/{reminder_id}")
async def get_reminder(reminder_id: str):
    """Detalle de un recordatorio."""
    from app.services.reminder_service import get_reminder_service

    service = get_reminder_service()
    return _reminder_payload(service, service.get(reminder_id))


@app.delete("/admin/reminders/{reminder_id}")
async def delete_reminder(reminder_id: str):
    """Elimina un recordatorio."""
    from app.services.reminder_service import get_reminder_service

    result = get_reminder_service().remove(reminder_id)
    if not result.found:
        raise NotFoundError(reminder_id)
    return {"status": "deleted", "id": result.id}
