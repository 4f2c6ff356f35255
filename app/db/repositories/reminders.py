"""Repository para manejo de recordatorios persistidos en el brain."""

import logging

from app.db.brain import Brain
from app.domain.entities.reminder import Reminder
from app.utils.errors import ConsistencyFault, ReminderBotError, log_error

logger = logging.getLogger(__name__)


class ReminderStore:
    """
    Colección durable de recordatorios.

    Todos los recordatorios viven como un único array bajo una clave fija
    del brain. Cada mutación hace flush antes de retornar.
    """

    def __init__(self, brain: Brain, key: str):
        self.brain = brain
        self.key = key
        self._reminders: list[Reminder] = []
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    def reset(self) -> None:
        """Limpia el cache en memoria; el siguiente load() vuelve a leer el brain."""
        self._reminders = []
        self._loaded = False

    def load(self) -> list[Reminder]:
        """
        Carga los recordatorios del brain.

        Idempotente: si ya se cargó, retorna el cache sin volver a importar.
        Un registro ilegible se descarta (con log) sin afectar al resto.
        """
        if self._loaded:
            logger.debug("Recordatorios ya cargados, se ignora la recarga")
            return list(self._reminders)

        raw = self.brain.get(self.key) or []
        seen: set[str] = set()
        reminders = []
        dropped = 0
        for item in raw:
            try:
                reminder = Reminder.from_dict(item)
            except (ReminderBotError, KeyError, TypeError, AttributeError) as e:
                reminder_id = item.get("id") if isinstance(item, dict) else None
                log_error(
                    ConsistencyFault(f"Unreadable reminder record: {e}", reminder_id),
                    "reminder_store_load",
                )
                dropped += 1
                continue
            if reminder.id in seen:
                logger.warning(f"Recordatorio duplicado en el brain, se ignora: {reminder.id}")
                continue
            seen.add(reminder.id)
            reminders.append(reminder)

        self._reminders = reminders
        self._loaded = True

        if dropped:
            # El brain deja de contener los registros descartados
            try:
                self._persist()
            except ReminderBotError as e:
                log_error(e, "reminder_store_load")

        logger.info(f"Cargados {len(reminders)} recordatorios del brain")
        return list(self._reminders)

    def list(self) -> list[Reminder]:
        """Retorna los recordatorios en orden de creación."""
        return list(self._reminders)

    def get(self, reminder_id: str) -> Reminder | None:
        """Busca un recordatorio por ID."""
        for reminder in self._reminders:
            if reminder.id == reminder_id:
                return reminder
        return None

    def append(self, reminder: Reminder) -> None:
        """Agrega un recordatorio y lo persiste."""
        self._reminders.append(reminder)
        try:
            self._persist()
        except Exception:
            self._reminders.remove(reminder)
            raise
        logger.info(f"Recordatorio persistido: {reminder.id}")

    def remove_by_id(self, reminder_id: str) -> Reminder | None:
        """Elimina un recordatorio y persiste; None si no existe."""
        reminder = self.get(reminder_id)
        if reminder is None:
            return None

        index = self._reminders.index(reminder)
        del self._reminders[index]
        try:
            self._persist()
        except Exception:
            self._reminders.insert(index, reminder)
            raise
        logger.info(f"Recordatorio eliminado del brain: {reminder_id}")
        return reminder

    def _persist(self) -> None:
        self.brain.set(self.key, [reminder.to_dict() for reminder in self._reminders])
        self.brain.save()
