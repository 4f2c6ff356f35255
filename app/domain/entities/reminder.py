"""
Reminder Entity - Representación de un recordatorio.
"""

from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from app.domain.time_pattern import TimePattern


def generate_id() -> str:
    """Genera un ID corto y opaco para un recordatorio."""
    return uuid4().hex[:9]


@dataclass(frozen=True)
class Reminder:
    """
    Entidad de Recordatorio.

    Inmutable una vez creada; solo se puede borrar.
    """

    id: str
    time: TimePattern
    message: str
    room: str
    user: str

    @property
    def is_one_shot(self) -> bool:
        return self.time.is_one_shot

    def to_dict(self) -> dict[str, Any]:
        """Convierte a diccionario plano para el brain."""
        return {
            "time": self.time.to_dict(),
            "message": self.message,
            "room": self.room,
            "user": self.user,
            "id": self.id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Reminder":
        return cls(
            id=str(data["id"]),
            time=TimePattern.from_dict(data.get("time") or {}),
            message=data.get("message", ""),
            room=str(data.get("room", "")),
            user=data.get("user", ""),
        )


@dataclass(frozen=True)
class RemovalResult:
    """Resultado de borrar un recordatorio."""

    found: bool
    id: str

    @property
    def message(self) -> str:
        if self.found:
            return f"I've deleted the task with id [{self.id}]"
        return f"Whoops! Couldn't find the reminder [{self.id}]"
