"""
Brain - Almacén clave-valor persistente.

Uso:
    brain = Brain()
    brain.on_ready(callback)   # se llama después de cada load()
    brain.load()
    brain.set("key", [...])
    brain.save()               # flush síncrono a la base de datos

La señal "ready" puede dispararse más de una vez (cada load() la emite);
los listeners deben protegerse ellos mismos contra repeticiones.
"""

import json
import logging
from datetime import datetime
from typing import Any, Callable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from app.db.database import get_session_factory
from app.db.models import BrainEntryModel
from app.utils.errors import StorageError, log_error, retry_storage

logger = logging.getLogger(__name__)

ReadyListener = Callable[[], None]


class Brain:
    """Blob store con claves string y valores JSON."""

    def __init__(self, session_factory: sessionmaker | None = None):
        self._session_factory = session_factory or get_session_factory()
        self._data: dict[str, Any] = {}
        self._listeners: list[ReadyListener] = []
        self.loaded = False

    # ==================== KEY-VALUE ====================

    def get(self, key: str, default: Any = None) -> Any:
        """Obtiene el valor en memoria de una clave."""
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Guarda un valor en memoria (usar save() para persistir)."""
        self._data[key] = value

    def save(self) -> None:
        """Persiste todas las claves de forma síncrona."""
        try:
            self._flush()
        except SQLAlchemyError as e:
            raise StorageError(f"No se pudo guardar el brain: {e}") from e

    @retry_storage()
    def _flush(self) -> None:
        with self._session_factory() as session:
            for key, value in self._data.items():
                session.merge(
                    BrainEntryModel(
                        key=key,
                        value=json.dumps(value),
                        updated_at=datetime.now(),
                    )
                )
            session.commit()
        logger.debug(f"Brain guardado ({len(self._data)} claves)")

    def load(self) -> None:
        """Lee todas las claves de la base de datos y emite "ready"."""
        try:
            with self._session_factory() as session:
                rows = session.execute(select(BrainEntryModel)).scalars().all()
                self._data = {row.key: json.loads(row.value) for row in rows}
        except SQLAlchemyError as e:
            raise StorageError(f"No se pudo cargar el brain: {e}") from e

        self.loaded = True
        logger.info(f"Brain cargado ({len(self._data)} claves)")
        self._emit_ready()

    # ==================== READY SIGNAL ====================

    def on_ready(self, listener: ReadyListener) -> None:
        """Registra un listener para la señal "ready"."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: ReadyListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit_ready(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                log_error(e, "brain_ready_listener")
