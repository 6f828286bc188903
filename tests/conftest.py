"""
Shared fixtures for the helpdesk test suite.

Provides: in-memory SQLite engine and sessions, ticket/job factories,
recording fakes for the event sink, the worker reporter and the queue, and an
API client with bearer tokens.
"""

import os

# Settings are cached on first import; point them at throwaway backends first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["INTERNAL_API_TOKEN"] = "test-internal-token"
os.environ["CREATE_SCHEMA_ON_STARTUP"] = "false"

from types import SimpleNamespace
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from helpdesk.api.dependencies.auth import create_access_token
from helpdesk.api.dependencies.db import get_session
from helpdesk.db.base import Base
from helpdesk.db.init_db import create_schema
from helpdesk.db.models.job import Job, utcnow
from helpdesk.db.models.ticket import Ticket
from helpdesk.db.session import engine_options
from helpdesk.services import job_queue, job_store
from helpdesk.services.events import EventEmitter
from helpdesk.services.job_payloads import BulkDeletePayload

ADMIN_ID = 1
USER_ID = 2
OTHER_USER_ID = 3


class RecordingSink:
    """EventSink that keeps every publish in memory."""

    def __init__(self) -> None:
        self.published: list[tuple[str, str, dict[str, Any]]] = []

    def publish(self, channel: str, event: str, data: dict[str, Any]) -> None:
        self.published.append((channel, event, data))

    def events_on(self, channel: str) -> list[tuple[str, dict[str, Any]]]:
        return [(event, data) for ch, event, data in self.published if ch == channel]


class RecordingReporter:
    """JobEventReporter that records calls; on_progress lets a test act between chunks."""

    def __init__(self, on_progress=None) -> None:
        self.progress_events: list[tuple[int, int]] = []
        self.item_events: list[tuple[int, str, str | None]] = []
        self.completed_events: list[dict[str, Any]] = []
        self.failed_events: list[str] = []
        self._on_progress = on_progress

    def progress(self, job_id: str, progress: int, processed_items: int) -> None:
        self.progress_events.append((progress, processed_items))
        if self._on_progress is not None:
            self._on_progress(job_id, progress, processed_items)

    def item(self, job_id: str, item_id: int, outcome: str, error: str | None = None) -> None:
        self.item_events.append((item_id, outcome, error))

    def completed(self, job_id: str, job: dict[str, Any]) -> None:
        self.completed_events.append(job)

    def failed(self, job_id: str, error: str) -> None:
        self.failed_events.append(error)


class FakeTask:
    """Stands in for the Celery task so nothing is published to a broker."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.error: Exception | None = None

    def apply_async(self, args=None, kwargs=None, **options):
        if self.error is not None:
            raise self.error
        self.calls.append({"args": args, **options})
        return SimpleNamespace(id=f"task-{len(self.calls)}")


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    test_engine = create_engine("sqlite://", **engine_options("sqlite://"))
    create_schema(test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_tickets(db):
    """Create tickets with explicit ids; ids listed in deleted start soft-deleted."""

    def _make(ids, deleted=()):
        tickets = []
        for ticket_id in ids:
            ticket = Ticket(id=ticket_id, title=f"Ticket {ticket_id}", description="printer on fire")
            if ticket_id in deleted:
                ticket.deleted_at = utcnow()
            db.add(ticket)
            tickets.append(ticket)
        db.commit()
        return tickets

    return _make


@pytest.fixture
def make_job(db):
    """Persist a queued bulk delete job and return it."""

    def _make(ticket_ids, submitter_id=ADMIN_ID, idempotency_key=None) -> Job:
        job = job_store.create_bulk_delete_job(
            db,
            submitter_id=submitter_id,
            payload=BulkDeletePayload(ticket_ids=ticket_ids),
            idempotency_key=idempotency_key,
        )
        db.commit()
        return job

    return _make


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def emitter(sink):
    return EventEmitter(sink)


@pytest.fixture
def fake_task(monkeypatch):
    task = FakeTask()
    monkeypatch.setattr(job_queue, "bulk_delete_task", task)
    return task


@pytest.fixture
def app(session_factory, emitter, fake_task):
    """API app wired to the test database, the recording sink and the fake queue."""
    from helpdesk.main import create_app

    application = create_app()

    def _override_session():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    application.dependency_overrides[get_session] = _override_session
    application.state.event_emitter = emitter
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)


def bearer(user_id: int, role: str = "user") -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


@pytest.fixture
def admin_headers():
    return bearer(ADMIN_ID, "admin")


@pytest.fixture
def user_headers():
    return bearer(USER_ID)


@pytest.fixture
def other_user_headers():
    return bearer(OTHER_USER_ID)
