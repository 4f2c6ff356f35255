"""Pytest configuration and fixtures for Reminder Bot tests."""

import os
from unittest.mock import AsyncMock, MagicMock

import pytest
from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment
os.environ["APP_ENV"] = "test"
os.environ["DEBUG"] = "true"
os.environ["TELEGRAM_BOT_TOKEN"] = "123456:TEST-TOKEN"
os.environ["TELEGRAM_CHAT_ID"] = "test_chat_id"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from app.db.brain import Brain  # noqa: E402
from app.db.database import Base  # noqa: E402
from app.db.models import BrainEntryModel  # noqa: E402,F401
from app.db.repositories.reminders import ReminderStore  # noqa: E402
from app.scheduler.registry import JobRegistry  # noqa: E402
from app.services.reminder_service import ReminderService  # noqa: E402

BRAIN_KEY = "test.reminders"


@pytest.fixture
def session_factory():
    """In-memory SQLite shared across sessions (simulates the durable disk)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def brain(session_factory):
    return Brain(session_factory)


@pytest.fixture
def store(brain):
    return ReminderStore(brain, BRAIN_KEY)


@pytest.fixture
def scheduler():
    """Scheduler that is never started: jobs stay pending, nothing fires on its own."""
    return BackgroundScheduler(timezone="UTC")


@pytest.fixture
def registry(scheduler):
    return JobRegistry(scheduler)


@pytest.fixture
def notifier():
    """Mock chat transport."""
    mock = MagicMock()
    mock.send = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def service(store, registry, notifier):
    """Service already reconciled against an empty brain."""
    svc = ReminderService(store=store, registry=registry, notifier=notifier)
    svc.initialize()
    store.brain.load()
    return svc


@pytest.fixture
def restart(session_factory, notifier):
    """Builds a fresh process view (brain, store, scheduler, service) over the same database."""

    def _restart() -> ReminderService:
        new_store = ReminderStore(Brain(session_factory), BRAIN_KEY)
        new_registry = JobRegistry(BackgroundScheduler(timezone="UTC"))
        svc = ReminderService(store=new_store, registry=new_registry, notifier=notifier)
        svc.initialize()
        new_store.brain.load()
        return svc

    return _restart


@pytest.fixture
def sample_reminder_dict():
    """Reminder as persisted in the brain."""
    return {
        "time": {
            "seconds": "0",
            "minutes": "00",
            "hours": "23",
            "monthday": "*",
            "month": "*",
            "weekday": 3,
            "year": "*",
        },
        "message": "eat cheese",
        "room": "room1",
        "user": "alice",
        "id": "abc123xyz",
    }
