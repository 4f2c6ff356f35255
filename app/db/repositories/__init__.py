"""Repositories para acceso a datos."""

from app.db.repositories.reminders import ReminderStore

__all__ = [
    "ReminderStore",
]
