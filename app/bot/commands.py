"""
Comandos "remind ..." - Parseo y respuestas sin conocimiento del transporte.

Comandos:
    remind <me|@user> to <task> <every|on|tomorrow|today> [<day|date>] [at HH:MM]
    remind help
    remind count
    remind reload brain
    remind show all reminders
    remind delete <id>
    remind delete all
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime

from app.config import get_settings
from app.domain.date_resolver import build_pattern
from app.domain.entities.reminder import Reminder
from app.services.reminder_service import ReminderService
from app.utils.errors import ReminderBotError, ValidationError, log_error
from app.utils.text import describe_pattern, truncate_text

logger = logging.getLogger(__name__)
settings = get_settings()

MAX_TASK_DISPLAY = 200

HELP_TEXT = (
    "Hello! Welcome to the reminder service.\n\n"
    "To add a new reminder all you have to do is type\n\n"
    "remind [me|@user] to [task you want to do] [every|on|tomorrow|today] "
    "[date|day|weekday|saturday|sunday|monday|tuesday|wednesday|thursday|friday] "
    "at [time in 24hr format e.g. 13:23]\n\n"
    "for example\n\n"
    "remind me to eat cheese every Wednesday at 23:00\n\n"
    "Other commands:\n"
    "remind count - how many reminders are running\n"
    "remind show all reminders - reminders in this channel\n"
    "remind delete <id> - delete a reminder\n"
    "remind delete all - delete every reminder in this channel\n"
    "remind reload brain - reload reminders from storage"
)

UNKNOWN_TEXT = "I didn't get that. Type 'remind help' for instructions."

HELP_COMMAND = re.compile(r"^remind\s+help$", re.IGNORECASE)
COUNT_COMMAND = re.compile(r"^remind\s+count$", re.IGNORECASE)
RELOAD_COMMAND = re.compile(r"^remind\s+reload\s+brain$", re.IGNORECASE)
SHOW_COMMAND = re.compile(r"^remind\s+show\s+all\s+reminders$", re.IGNORECASE)
DELETE_COMMAND = re.compile(r"^remind\s+delete\s+(?P<target>\S+)$", re.IGNORECASE)
ADD_COMMAND = re.compile(
    r"^remind\s+(?:(?P<me>me)|@(?P<user>\S+))\s+to\s+(?P<task>.+)\s+"
    r"(?P<repeat>every|on|tomorrow|today)"
    r"(?:\s+(?P<when>(?!at\b)\S+))?"
    r"(?:\s+at\s+(?P<time>\d{1,2}:\d{2}))?\s*$",
    re.IGNORECASE,
)


@dataclass
class AddRequest:
    """Campos extraídos de un comando de alta."""

    target_user: str
    is_self: bool
    task: str
    repeat: str
    when: str | None
    time: str | None


def parse_add_command(text: str, requesting_user: str) -> AddRequest | None:
    """Extrae los campos de "remind ... to ..."; None si no coincide."""
    match = ADD_COMMAND.match(text.strip())
    if not match:
        return None

    is_self = match.group("me") is not None
    return AddRequest(
        target_user=requesting_user if is_self else match.group("user"),
        is_self=is_self,
        task=match.group("task").strip(),
        repeat=match.group("repeat").lower(),
        when=match.group("when"),
        time=match.group("time"),
    )


def handle_command(
    service: ReminderService,
    text: str,
    user_name: str,
    room: str,
    now: datetime | None = None,
) -> list[str]:
    """
    Procesa un mensaje y retorna las respuestas a enviar a la sala.

    Retorna lista vacía si el mensaje no es un comando "remind".
    Los errores de validación se devuelven como texto, nunca se lanzan.
    """
    text = (text or "").strip()
    if not text.lower().startswith("remind"):
        return []

    if HELP_COMMAND.match(text):
        return [HELP_TEXT]

    if COUNT_COMMAND.match(text):
        return [_count_text(service)]

    if RELOAD_COMMAND.match(text):
        service.initialize()
        return [f"Brain reloaded. {_count_text(service)}"]

    if SHOW_COMMAND.match(text):
        return show_reminders(service, room)

    match = DELETE_COMMAND.match(text)
    if match:
        target = match.group("target")
        if target.lower() == "all":
            return delete_all(service, room)
        return [service.remove(target).message]

    request = parse_add_command(text, user_name)
    if request is not None:
        return [add_reminder(service, request, room, now)]

    return [UNKNOWN_TEXT]


def add_reminder(
    service: ReminderService,
    request: AddRequest,
    room: str,
    now: datetime | None = None,
) -> str:
    """Valida, programa el recordatorio y retorna la confirmación."""
    try:
        pattern = build_pattern(
            request.repeat,
            request.when,
            request.time,
            now=now,
            default_hour=settings.default_reminder_hour,
            default_minute=settings.default_reminder_minute,
        )
        reminder_id = service.add_pattern(pattern, request.task, room, request.target_user)
    except ValidationError as e:
        logger.info(f"Comando rechazado: {e.message}")
        return e.message
    except ReminderBotError as e:
        log_error(e, "add_reminder")
        return "Something went wrong saving that reminder, please try again."

    who = "you" if request.is_self else f"@{request.target_user}"
    return f"I'll remind {who} to {request.task} {describe_pattern(pattern)} [{reminder_id}]"


def describe_reminder(reminder: Reminder) -> str:
    """Línea de "show all reminders"."""
    task = truncate_text(reminder.message, MAX_TASK_DISPLAY)
    return f"I'm reminding - {reminder.user} to {task} {describe_pattern(reminder.time)} [{reminder.id}]"


def reminders_in_room(service: ReminderService, room: str) -> list[Reminder]:
    return [reminder for reminder in service.list() if reminder.room == room]


def show_reminders(service: ReminderService, room: str) -> list[str]:
    reminders = reminders_in_room(service, room)
    if not reminders:
        return ["No reminders in this channel!"]
    return [describe_reminder(reminder) for reminder in reminders]


def delete_all(service: ReminderService, room: str) -> list[str]:
    """Borra todos los recordatorios de la sala."""
    reminders = reminders_in_room(service, room)
    if not reminders:
        return ["No reminders in this channel!"]
    return [service.remove(reminder.id).message for reminder in reminders]


def _count_text(service: ReminderService) -> str:
    return f"There are {service.count()} reminders currently running."
