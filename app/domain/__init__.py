"""
Domain module - Entidades y reglas de calendario.

Estructura:
    - entities/: Dataclasses que representan el dominio
    - time_pattern: Patrón de calendario de siete campos
    - date_resolver: Frases humanas -> días de la semana / fechas
"""

from app.domain.entities import Reminder, RemovalResult, generate_id
from app.domain.time_pattern import (
    ANY_DAY,
    ANY_WEEKDAY,
    WILDCARD,
    TimePattern,
)

__all__ = [
    # Entities
    "Reminder",
    "RemovalResult",
    "generate_id",
    # Time patterns
    "TimePattern",
    "WILDCARD",
    "ANY_DAY",
    "ANY_WEEKDAY",
]
