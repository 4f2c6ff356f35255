"""Utilidades de Reminder Bot."""

from app.utils.errors import (
    ReminderBotError,
    ValidationError,
    NotFoundError,
    ConsistencyFault,
    DuplicateJobError,
    StorageError,
    TelegramAPIError,
    ErrorCategory,
    ErrorContext,
    log_error,
    retry_storage,
)

__all__ = [
    # Errors
    "ReminderBotError",
    "ValidationError",
    "NotFoundError",
    "ConsistencyFault",
    "DuplicateJobError",
    "StorageError",
    "TelegramAPIError",
    "ErrorCategory",
    "ErrorContext",
    "log_error",
    "retry_storage",
]
