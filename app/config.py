"""Configuracion de la aplicacion usando Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuracion principal de Reminder Bot."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # App
    app_env: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Telegram
    telegram_bot_token: str = ""
    telegram_webhook_url: str = ""
    telegram_chat_id: str = ""

    # Persistencia (brain clave-valor)
    database_url: str = "sqlite:///data/reminders.db"
    brain_key: str = "_telegram.reminder"

    # Timezone (vacio = zona local del host)
    tz: str = ""

    # Scheduler
    scheduler_misfire_grace_time: int = 60

    # Hora por defecto cuando el comando no incluye "at HH:MM"
    default_reminder_hour: int = 9
    default_reminder_minute: int = 0

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Obtiene la configuracion cacheada."""
    return Settings()
