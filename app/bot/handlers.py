"""
Bot Handlers - Puente entre Telegram y los comandos "remind".

La sala (room) es el chat de Telegram; el usuario que pide es el
username (o el nombre si no tiene username).
"""

import logging

from telegram import BotCommand, Update
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from app.bot.commands import (
    HELP_TEXT,
    SHOW_COMMAND,
    describe_reminder,
    handle_command,
    reminders_in_room,
)
from app.bot.keyboards import parse_delete_callback, reminder_delete_keyboard
from app.config import get_settings
from app.services.reminder_service import get_reminder_service
from app.utils.errors import log_error

logger = logging.getLogger(__name__)
settings = get_settings()

# Configuración de seguridad
MAX_MESSAGE_LENGTH = 2000

ERROR_TEXT = "Something went wrong, please try again."

# Application singleton
_application: Application | None = None


# ==================== HELPER FUNCTIONS ====================


def _get_room(update: Update) -> str:
    """La sala del recordatorio es el chat del mensaje."""
    return str(update.effective_chat.id)


def _get_user_name(update: Update) -> str:
    user = update.effective_user
    if user is None:
        return "someone"
    return user.username or user.first_name


# ==================== COMMAND HANDLERS ====================


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handler para /start y /help."""
    await update.message.reply_text(HELP_TEXT)


# ==================== MESSAGE HANDLER ====================


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Procesa mensajes de texto "remind ..."."""
    if not update.message or not update.message.text:
        return

    text = update.message.text[:MAX_MESSAGE_LENGTH]
    room = _get_room(update)
    service = get_reminder_service()

    try:
        if SHOW_COMMAND.match(text.strip()):
            reminders = reminders_in_room(service, room)
            if reminders:
                for reminder in reminders:
                    await update.message.reply_text(
                        describe_reminder(reminder),
                        reply_markup=reminder_delete_keyboard(reminder.id),
                    )
                return

        replies = handle_command(service, text, _get_user_name(update), room)
    except Exception as e:
        log_error(e, "handle_message", extra={"room": room})
        await update.message.reply_text(ERROR_TEXT)
        return

    for reply in replies:
        await update.message.reply_text(reply)


async def handle_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Procesa el botón de borrar de "show all reminders"."""
    query = update.callback_query
    await query.answer()

    reminder_id = parse_delete_callback(query.data)
    if reminder_id is None:
        logger.warning(f"Callback desconocido: {query.data}")
        return

    try:
        result = get_reminder_service().remove(reminder_id)
    except Exception as e:
        log_error(e, "handle_callback", extra={"reminder_id": reminder_id})
        await query.edit_message_text(ERROR_TEXT)
        return

    await query.edit_message_text(result.message)


# ==================== SETUP ====================


def setup_handlers(app: Application) -> None:
    """Configura todos los handlers del bot."""

    # Comandos
    app.add_handler(CommandHandler("start", help_command))
    app.add_handler(CommandHandler("help", help_command))

    # Callbacks
    app.add_handler(CallbackQueryHandler(handle_callback))

    # Mensajes de texto (catch-all)
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message))

    logger.info("Handlers configurados")


async def get_application() -> Application:
    """Obtiene o crea la aplicación de Telegram."""
    global _application

    if _application is None:
        _application = (
            Application.builder()
            .token(settings.telegram_bot_token)
            .build()
        )
        setup_handlers(_application)

    return _application


async def initialize_bot() -> Application:
    """Inicializa el bot de Telegram."""
    app = await get_application()
    await app.initialize()
    await app.start()

    commands = [
        BotCommand("help", "❓ How to create reminders"),
    ]
    await app.bot.set_my_commands(commands)

    logger.info("Bot de Telegram inicializado")
    return app


async def shutdown_bot() -> None:
    """Detiene el bot de Telegram."""
    global _application
    if _application:
        await _application.stop()
        await _application.shutdown()
        _application = None
        logger.info("Bot de Telegram detenido")
