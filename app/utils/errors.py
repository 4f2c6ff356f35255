"""Manejo centralizado de errores y excepciones."""

import logging
import traceback
from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlalchemy.exc import OperationalError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

logger = logging.getLogger(__name__)


class ErrorCategory(str, Enum):
    """Categorías de errores."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONSISTENCY = "consistency"
    STORAGE = "storage"
    SCHEDULER = "scheduler"
    API_TELEGRAM = "api_telegram"
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """Contexto de un error para logging."""

    category: ErrorCategory
    operation: str
    error_type: str
    message: str
    details: dict[str, Any] | None = None
    traceback_str: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convierte a diccionario para logging."""
        return {
            "category": self.category.value,
            "operation": self.operation,
            "error_type": self.error_type,
            "message": self.message,
            "details": self.details,
        }


class ReminderBotError(Exception):
    """Excepción base para Reminder Bot."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.category.value}] {self.message}"


class ValidationError(ReminderBotError):
    """El input del usuario no se puede programar."""

    def __init__(self, message: str, field: str | None = None, details: dict[str, Any] | None = None):
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, ErrorCategory.VALIDATION, details)
        self.field = field


class NotFoundError(ReminderBotError):
    """No existe un recordatorio con ese ID."""

    def __init__(self, reminder_id: str):
        super().__init__(
            f"Reminder {reminder_id} not found",
            ErrorCategory.NOT_FOUND,
            {"reminder_id": reminder_id},
        )
        self.reminder_id = reminder_id


class ConsistencyFault(ReminderBotError):
    """La biyección entre registros persistidos y timers vivos se rompió."""

    def __init__(self, message: str, reminder_id: str | None = None, details: dict[str, Any] | None = None):
        details = details or {}
        if reminder_id:
            details["reminder_id"] = reminder_id
        super().__init__(message, ErrorCategory.CONSISTENCY, details)
        self.reminder_id = reminder_id


class DuplicateJobError(ConsistencyFault):
    """Ya hay un timer vivo con ese ID."""

    def __init__(self, reminder_id: str):
        super().__init__(f"Job {reminder_id} is already scheduled", reminder_id)


class StorageError(ReminderBotError):
    """Error leyendo o escribiendo el brain."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCategory.STORAGE, details)


class TelegramAPIError(ReminderBotError):
    """Error de la API de Telegram."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCategory.API_TELEGRAM, details)


def log_error(
    error: Exception,
    operation: str,
    category: ErrorCategory = ErrorCategory.UNKNOWN,
    extra: dict[str, Any] | None = None,
) -> ErrorContext:
    """
    Registra un error con contexto estructurado.

    Args:
        error: La excepción capturada
        operation: Nombre de la operación que falló
        category: Categoría del error
        extra: Información adicional

    Returns:
        ErrorContext con los detalles del error
    """
    if isinstance(error, ReminderBotError):
        category = error.category
        details = {**(error.details or {}), **(extra or {})}
    else:
        details = extra or {}

    context = ErrorContext(
        category=category,
        operation=operation,
        error_type=type(error).__name__,
        message=str(error),
        details=details,
        traceback_str=traceback.format_exc(),
    )

    logger.error(
        f"Error en {operation}: {error}",
        extra={"error_context": context.to_dict()},
    )

    return context


def retry_storage():
    """Retry configurado para el flush del brain (SQLite bloqueado, etc)."""
    return retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
        retry=retry_if_exception_type(OperationalError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
