"""Domain Entities - Dataclasses del dominio."""

from app.domain.entities.reminder import Reminder, RemovalResult, generate_id

__all__ = [
    "Reminder",
    "RemovalResult",
    "generate_id",
]
