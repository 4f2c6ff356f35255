"""
TimePattern - Patrón de calendario de siete campos.

Cada campo es un comodín ("*"), un entero concreto o, solo para weekday,
un rango: "0-6" (cualquier día) o "1-5" (lunes a viernes).

- year concreto  -> one-shot (monthday y month también son concretos)
- year comodín   -> recurrente

Weekday canónico: 0-6 con 0 = domingo. El 7 (domingo ISO) se pliega a 0.
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any

from app.utils.errors import ValidationError

WILDCARD = "*"
ANY_DAY = "0-6"
ANY_WEEKDAY = "1-5"
WEEKDAY_RANGES = (ANY_DAY, ANY_WEEKDAY)

FieldValue = int | str

# (min, max) permitidos por campo
_FIELD_BOUNDS: dict[str, tuple[int, int]] = {
    "seconds": (0, 59),
    "minutes": (0, 59),
    "hours": (0, 23),
    "monthday": (1, 31),
    "month": (1, 12),
    "weekday": (0, 7),
    "year": (1970, 9999),
}

# APScheduler cuenta day_of_week con 0 = lunes; usar nombres evita la ambigüedad
CRON_DAY_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")
_CRON_WEEKDAY_RANGES = {
    ANY_DAY: "*",
    ANY_WEEKDAY: "mon-fri",
}


def _coerce_field(name: str, value: Any) -> FieldValue:
    """Convierte un valor crudo ("09", 9, "*", "1-5") a su forma canónica."""
    if value is None:
        return WILDCARD

    if isinstance(value, str):
        value = value.strip()
        if value == WILDCARD:
            return WILDCARD
        if name == "weekday" and value in WEEKDAY_RANGES:
            return value
        if not value.isdigit():
            raise ValidationError(f"Invalid {name}: {value!r}", field=name)
        value = int(value)

    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"Invalid {name}: {value!r}", field=name)

    low, high = _FIELD_BOUNDS[name]
    if not low <= value <= high:
        raise ValidationError(f"{name} must be between {low} and {high}, got {value}", field=name)

    return value


@dataclass(frozen=True)
class TimePattern:
    """Disparador de calendario usado para el timer y para describir el horario."""

    seconds: FieldValue = 0
    minutes: FieldValue = 0
    hours: FieldValue = 9
    monthday: FieldValue = WILDCARD
    month: FieldValue = WILDCARD
    weekday: FieldValue = WILDCARD
    year: FieldValue = WILDCARD

    def __post_init__(self) -> None:
        for name in _FIELD_BOUNDS:
            object.__setattr__(self, name, _coerce_field(name, getattr(self, name)))

        # Cron usa 0-6 con 0 = domingo, no el 7 = domingo de ISO
        if self.weekday == 7:
            object.__setattr__(self, "weekday", 0)

        if self.is_one_shot and WILDCARD in (self.monthday, self.month):
            raise ValidationError("A dated reminder needs a concrete day and month", field="year")

    @property
    def is_one_shot(self) -> bool:
        """True si el patrón dispara una sola vez (year concreto)."""
        return self.year != WILDCARD

    @property
    def is_recurring(self) -> bool:
        return not self.is_one_shot

    @classmethod
    def at(cls, when: datetime, weekday: FieldValue = WILDCARD) -> "TimePattern":
        """Patrón one-shot para un instante concreto."""
        return cls(
            seconds=when.second,
            minutes=when.minute,
            hours=when.hour,
            monthday=when.day,
            month=when.month,
            weekday=weekday,
            year=when.year,
        )

    @classmethod
    def every(cls, weekday: FieldValue, hours: int, minutes: int, seconds: int = 0) -> "TimePattern":
        """Patrón recurrente por día de la semana."""
        return cls(seconds=seconds, minutes=minutes, hours=hours, weekday=weekday)

    def as_datetime(self) -> datetime | None:
        """Instante concreto del patrón one-shot, None si es recurrente."""
        if not self.is_one_shot:
            return None
        try:
            return datetime(
                self.year, self.month, self.monthday,
                self.hours, self.minutes, self.seconds,
            )
        except (TypeError, ValueError):
            # Algún campo de hora es comodín o la fecha no existe (31/02)
            return None

    def to_trigger_kwargs(self) -> dict[str, FieldValue]:
        """
        Convierte a los argumentos de apscheduler.triggers.cron.CronTrigger.

        APScheduler usa meses 1-12 (igual que aquí, sin conversión) y
        day_of_week con 0 = lunes, por eso weekday se traduce a nombres.
        """
        if self.weekday == WILDCARD:
            day_of_week: FieldValue = WILDCARD
        elif self.weekday in _CRON_WEEKDAY_RANGES:
            day_of_week = _CRON_WEEKDAY_RANGES[self.weekday]
        else:
            day_of_week = CRON_DAY_NAMES[self.weekday]

        return {
            "second": self.seconds,
            "minute": self.minutes,
            "hour": self.hours,
            "day": self.monthday,
            "month": self.month,
            "day_of_week": day_of_week,
            "year": self.year,
        }

    def to_dict(self) -> dict[str, FieldValue]:
        """Convierte a diccionario plano para persistir."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimePattern":
        return cls(**{name: data.get(name, WILDCARD) for name in _FIELD_BOUNDS})
