"""
Test configuration and fixtures.

Provides:
- In-memory SQLite engine per test (tables + slot index created fresh)
- Database session bound to that engine
- Manual clock pinned to a fixed instant
- Recording event sink
"""
import os
import uuid
from datetime import datetime, timezone
from typing import Any, Generator

import pytest

# Keep the module-level engine off the developer's database
os.environ.setdefault("DATABASE_URL", "sqlite://")

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from lawdesk.core.clock import ManualClock
from lawdesk.db.session import init_db
from lawdesk.schemas.appointment import AppointmentCreate
from lawdesk.schemas.task import TaskCreate


NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class RecordingEventSink:
    """Event sink that keeps everything it is given."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def emit(self, event_name: str, payload: dict[str, Any]) -> None:
        self.events.append((event_name, payload))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def payloads(self, event_name: str) -> list[dict[str, Any]]:
        return [payload for name, payload in self.events if name == event_name]


class FailingEventSink:
    """Event sink whose downstream is always broken."""

    def __init__(self) -> None:
        self.calls = 0

    def emit(self, event_name: str, payload: dict[str, Any]) -> None:
        self.calls += 1
        raise RuntimeError("event sink unavailable")


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def engine() -> Generator[Engine, None, None]:
    """Fresh in-memory database with every table and index."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def db(engine: Engine) -> Generator[Session, None, None]:
    """Session bound to the per-test engine. Services may commit freely."""
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


# =============================================================================
# Collaborator Fixtures
# =============================================================================

@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(NOW)


@pytest.fixture
def events() -> RecordingEventSink:
    return RecordingEventSink()


@pytest.fixture
def failing_events() -> FailingEventSink:
    return FailingEventSink()


# =============================================================================
# Actors and Payloads
# =============================================================================

@pytest.fixture
def lawyer_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def client_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def stranger_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def appointment_data(lawyer_id, client_id):
    """Factory for AppointmentCreate payloads (defaults to tomorrow 10:00)."""

    def _make(**overrides) -> AppointmentCreate:
        fields = {
            "lawyer_id": lawyer_id,
            "client_id": client_id,
            "scheduled_at": datetime(2026, 3, 3, 10, 0, tzinfo=timezone.utc),
        }
        fields.update(overrides)
        return AppointmentCreate(**fields)

    return _make


@pytest.fixture
def task_data():
    """Factory for TaskCreate payloads."""

    def _make(**overrides) -> TaskCreate:
        fields = {
            "case_id": uuid.uuid4(),
            "assigned_to": uuid.uuid4(),
            "title": "Draft settlement letter",
        }
        fields.update(overrides)
        return TaskCreate(**fields)

    return _make
