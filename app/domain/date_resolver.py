"""
Date Resolver - Convierte frases humanas en días de la semana y fechas.

- resolve_weekday("weekday")     -> ANY_WEEKDAY
- resolve_weekday("wednesday")   -> 3 (ISO, domingo = 7)
- next_occurrence_of(3, lunes)   -> miércoles siguiente
- build_pattern("every", ...)    -> TimePattern recurrente
- build_pattern("on", ...)       -> TimePattern one-shot
"""

from datetime import date, datetime, timedelta

from app.domain.time_pattern import ANY_DAY, ANY_WEEKDAY, WEEKDAY_RANGES, WILDCARD, TimePattern
from app.utils.errors import ValidationError

WEEKDAY_NAMES = {
    "monday": 1,
    "tuesday": 2,
    "wednesday": 3,
    "thursday": 4,
    "friday": 5,
    "saturday": 6,
    "sunday": 7,
}

DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y")

REPEAT_TYPES = ("every", "on", "tomorrow", "today")


def resolve_weekday(phrase: str | None) -> int | str | None:
    """
    Convierte una frase a código de día de la semana.

    Returns:
        ANY_DAY para "day", ANY_WEEKDAY para "weekday", el número ISO (1-7)
        para un nombre de día, o None si la frase debe tratarse como fecha.
    """
    if not phrase:
        return None

    phrase = phrase.strip().lower()
    if phrase == "day":
        return ANY_DAY
    if phrase == "weekday":
        return ANY_WEEKDAY
    return WEEKDAY_NAMES.get(phrase)


def next_occurrence_of(weekday: int, now: datetime | date | None = None) -> date:
    """
    Próxima fecha (a partir de mañana) que cae en el día indicado.

    Acepta tanto el 7 ISO como el 0 de cron para domingo.
    """
    if now is None:
        now = datetime.now()
    if isinstance(now, datetime):
        now = now.date()

    target = 7 if weekday == 0 else weekday
    if not 1 <= target <= 7:
        raise ValidationError(f"Invalid weekday: {weekday!r}", field="weekday")

    day = now + timedelta(days=1)
    while day.isoweekday() != target:
        day += timedelta(days=1)
    return day


def parse_date(text: str) -> date:
    """Interpreta una fecha literal (YYYY-MM-DD o DD/MM/YYYY)."""
    text = (text or "").strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValidationError(
        "Whoa there, you can't set a reminder without letting me know a properly formatted date.",
        field="date",
    )


def parse_time(text: str | None, default_hour: int = 9, default_minute: int = 0) -> tuple[int, int]:
    """Interpreta "HH:MM" en formato 24h."""
    if not text:
        return default_hour, default_minute

    try:
        hours_str, minutes_str = text.strip().split(":")
        hours, minutes = int(hours_str), int(minutes_str)
    except ValueError:
        raise ValidationError(f"I don't understand the time {text!r}, use HH:MM", field="time")

    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValidationError(f"{text} is not a valid 24h time", field="time")
    return hours, minutes


def build_pattern(
    repeat: str,
    when: str | None = None,
    at: str | None = None,
    now: datetime | None = None,
    default_hour: int = 9,
    default_minute: int = 0,
) -> TimePattern:
    """
    Construye el TimePattern de un comando "remind ... <repeat> <when> at <at>".

    "every" guarda el día de la semana tal cual (recurrente); "on", "tomorrow"
    y "today" resuelven una fecha concreta (one-shot).

    Raises:
        ValidationError: si la combinación no se puede programar
    """
    if now is None:
        now = datetime.now()

    repeat = (repeat or "").strip().lower()
    if repeat not in REPEAT_TYPES:
        raise ValidationError(f"Unknown repeat type {repeat!r}", field="repeat")

    hours, minutes = parse_time(at, default_hour, default_minute)

    if repeat == "every":
        weekday = resolve_weekday(when)
        if weekday is None:
            raise ValidationError(
                "Every what? Tell me a day of the week, 'day' or 'weekday'.",
                field="weekday",
            )
        return TimePattern.every(weekday, hours, minutes)

    weekday = None
    if repeat == "on":
        weekday = resolve_weekday(when)
        if weekday in WEEKDAY_RANGES:
            raise ValidationError("What day of the week is that?", field="weekday")
        if weekday is not None:
            target = next_occurrence_of(weekday, now)
        else:
            target = parse_date(when)
    elif repeat == "tomorrow":
        target = (now + timedelta(days=1)).date()
    else:
        target = now.date()

    fire_at = datetime(target.year, target.month, target.day, hours, minutes)
    if fire_at <= now:
        raise ValidationError(
            f"{fire_at:%A, %B %d %H:%M} has already passed.",
            field="time",
        )

    return TimePattern.at(fire_at, weekday=weekday if weekday is not None else WILDCARD)
