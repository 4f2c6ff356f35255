"""Teclados inline para el bot de Telegram."""

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

DELETE_CALLBACK_PREFIX = "reminder_delete:"


def reminder_delete_keyboard(reminder_id: str) -> InlineKeyboardMarkup:
    """Botón para borrar un recordatorio desde "show all reminders"."""
    return InlineKeyboardMarkup([
        [
            InlineKeyboardButton(
                "🗑 Delete",
                callback_data=f"{DELETE_CALLBACK_PREFIX}{reminder_id}",
            ),
        ]
    ])


def parse_delete_callback(data: str | None) -> str | None:
    """Extrae el ID de un callback de borrado; None si no es uno."""
    if not data or not data.startswith(DELETE_CALLBACK_PREFIX):
        return None
    return data[len(DELETE_CALLBACK_PREFIX):] or None
