"""
Database - SQLAlchemy síncrono (SQLite por defecto).

El brain hace flush dentro de la misma llamada que muta la colección,
por eso aquí no se usa el engine async.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from app.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class Base(DeclarativeBase):
    """Base class para modelos SQLAlchemy."""
    pass


# Engine y session factory
_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def _ensure_sqlite_dir(database_url: str) -> None:
    """Crea el directorio del archivo SQLite si no existe."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


def get_engine() -> Engine:
    """Obtiene el engine de la base de datos."""
    global _engine
    if _engine is None:
        _ensure_sqlite_dir(settings.database_url)
        _engine = create_engine(
            settings.database_url,
            echo=False,
            pool_pre_ping=True,
        )
    return _engine


def get_session_factory() -> sessionmaker:
    """Obtiene la factory de sesiones."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            expire_on_commit=False,
        )
    return _session_factory


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Context manager para obtener una sesión."""
    factory = get_session_factory()
    with factory() as session:
        try:
            yield session
        except Exception:
            session.rollback()
            raise


def init_db(engine: Engine | None = None) -> None:
    """Inicializa la base de datos y crea las tablas."""
    # Importar modelos para que se registren
    from app.db.models import BrainEntryModel  # noqa: F401

    engine = engine or get_engine()
    logger.info(f"Conectando a la base de datos: {engine.url.render_as_string(hide_password=True)}")
    Base.metadata.create_all(engine)
    logger.info("Base de datos inicializada")


def close_db() -> None:
    """Cierra las conexiones de la base de datos."""
    global _engine, _session_factory

    if _engine:
        _engine.dispose()
        _engine = None
        _session_factory = None

    logger.info("Conexiones de base de datos cerradas")


def check_db_connection() -> bool:
    """Verifica la conexión a la base de datos."""
    try:
        with get_session() as session:
            session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Error conectando a la base de datos: {e}")
        return False
