"""
Utilidades de texto - Formateo de horarios y mensajes.

La descripción legible de un TimePattern es presentación: el núcleo
solo guarda los campos.
"""

from app.domain.time_pattern import ANY_DAY, ANY_WEEKDAY, WILDCARD, FieldValue, TimePattern

# Índice 0 = domingo, igual que TimePattern.weekday
WEEKDAY_DISPLAY = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)


def truncate_text(text: str, max_length: int = 50, ellipsis: str = "...") -> str:
    """
    Trunca texto respetando límites de palabras.

    Args:
        text: Texto a truncar
        max_length: Longitud máxima (default 50)
        ellipsis: String a agregar si se trunca (default "...")

    Returns:
        Texto truncado si excede max_length
    """
    if not text or len(text) <= max_length:
        return text or ""

    # Intentar cortar en espacio para no cortar palabras
    cut_point = text.rfind(" ", 0, max_length - len(ellipsis))
    if cut_point == -1:
        cut_point = max_length - len(ellipsis)

    return text[:cut_point] + ellipsis


def ordinal(n: int) -> str:
    """1 -> "1st", 2 -> "2nd", 11 -> "11th", 23 -> "23rd"."""
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def _two_digits(value: FieldValue) -> str:
    return f"{value:02d}" if isinstance(value, int) else str(value)


def format_clock(hours: FieldValue, minutes: FieldValue) -> str:
    """Hora en formato 24h, "HH:MM"."""
    return f"{_two_digits(hours)}:{_two_digits(minutes)}"


def describe_weekday(weekday: FieldValue) -> str:
    """Nombre legible de un weekday canónico o rango."""
    if weekday in (WILDCARD, ANY_DAY):
        return "day"
    if weekday == ANY_WEEKDAY:
        return "weekday"
    return WEEKDAY_DISPLAY[weekday]


def format_date(pattern: TimePattern) -> str:
    """Fecha de un one-shot como "Wednesday, October 21st"."""
    when = pattern.as_datetime()
    if when is None:
        return f"{pattern.year}-{_two_digits(pattern.month)}-{_two_digits(pattern.monthday)}"
    return f"{when:%A}, {when:%B} {ordinal(when.day)}"


def describe_pattern(pattern: TimePattern) -> str:
    """
    Describe el horario de un recordatorio.

    - one-shot:   "at Wednesday, October 21st 23:00"
    - recurrente: "every Wednesday at 23:00"
    """
    clock = format_clock(pattern.hours, pattern.minutes)
    if pattern.is_one_shot:
        return f"at {format_date(pattern)} {clock}"
    return f"every {describe_weekday(pattern.weekday)} at {clock}"
