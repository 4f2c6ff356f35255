"""Servicio de Telegram para enviar mensajes a una sala."""

import logging

from telegram import Bot
from telegram.error import TelegramError

from app.config import get_settings
from app.utils.errors import TelegramAPIError

logger = logging.getLogger(__name__)
settings = get_settings()


class TelegramService:
    """Cliente para enviar mensajes con la Telegram Bot API."""

    def __init__(self, bot: Bot | None = None):
        self._bot = bot
        self.chat_id = settings.telegram_chat_id

    @property
    def bot(self) -> Bot:
        """Bot creado al primer envío (permite arrancar sin token)."""
        if self._bot is None:
            self._bot = Bot(token=settings.telegram_bot_token)
        return self._bot

    async def send(self, room: str | None, text: str) -> None:
        """
        Envía un mensaje de texto a la sala (chat) indicada.

        Sin reintentos: si falla, el error se propaga al llamador.

        Raises:
            TelegramAPIError: si Telegram rechaza el envío
        """
        target_chat = room or self.chat_id
        try:
            await self.bot.send_message(chat_id=target_chat, text=text)
        except TelegramError as e:
            raise TelegramAPIError(
                f"Error enviando mensaje: {e}",
                details={"room": target_chat},
            ) from e
        logger.info(f"Mensaje enviado a {target_chat}")


# Singleton
_telegram_service: TelegramService | None = None


def get_telegram_service() -> TelegramService:
    """Obtiene la instancia del servicio de Telegram."""
    global _telegram_service
    if _telegram_service is None:
        _telegram_service = TelegramService()
    return _telegram_service
