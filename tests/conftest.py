"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from approvalflow.api.main import create_app
from approvalflow.core.config import Settings
from approvalflow.core.workflow import (
    ApprovalWorkflowEngine,
    CollectingEventSink,
    InMemoryWorkflowStore,
)
from approvalflow.db.session import create_db_engine, create_session_factory, init_db
from approvalflow.db.store import SqlWorkflowStore


START = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock advancing one minute per reading."""

    def __init__(self, start: datetime = START, step: timedelta = timedelta(minutes=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current += self.step
        return value


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def events():
    return CollectingEventSink()


@pytest.fixture
def store():
    return InMemoryWorkflowStore()


@pytest.fixture
def engine(store, events, clock):
    return ApprovalWorkflowEngine(store, events=events, clock=clock)


@pytest.fixture
def session_factory():
    """Session factory bound to a fresh in-memory SQLite database."""
    db_engine = create_db_engine("sqlite://")
    init_db(db_engine)
    yield create_session_factory(db_engine)
    db_engine.dispose()


@pytest.fixture
def file_session_factory(tmp_path):
    """Session factory bound to a SQLite file, one connection per session."""
    db_engine = create_db_engine(f"sqlite:///{tmp_path / 'approvalflow.db'}")
    init_db(db_engine)
    yield create_session_factory(db_engine)
    db_engine.dispose()


@pytest.fixture
def sql_store(session_factory):
    return SqlWorkflowStore(session_factory)


@pytest.fixture
def sql_engine(sql_store, events, clock):
    return ApprovalWorkflowEngine(sql_store, events=events, clock=clock)


@pytest.fixture
def settings(tmp_path):
    return Settings(store_backend="memory", log_dir=str(tmp_path), log_level="WARNING")


@pytest.fixture
def client(settings, engine):
    app = create_app(settings=settings, engine=engine)
    with TestClient(app) as test_client:
        yield test_client
