from __future__ import annotations

import os
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

os.environ["APP_ENV"] = "test"
os.environ["SCHEDULER_TIMEZONE"] = "UTC"
TEST_DB_PATH = Path(tempfile.gettempdir()) / f"planner-test-{os.getpid()}.db"
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"

from planner.api.deps import get_scheduling_service  # noqa: E402
from planner.db.initializer import create_database_schema, drop_database_schema  # noqa: E402
from planner.db.session import SessionLocal, engine  # noqa: E402
from planner.integrations.google.calendar import CalendarAPIError  # noqa: E402
from planner.main import create_app  # noqa: E402
from planner.scheduler import Interval  # noqa: E402
from planner.services.scheduling import SchedulingService  # noqa: E402


class FakeCalendar:
    """In-memory stand-in for the Google calendar gateway."""

    def __init__(self) -> None:
        self.busy: list[Interval] = []
        self.failing_labels: set[str] = set()
        self.raising_labels: dict[str, Exception] = {}
        self.fail_busy_query = False
        self.events: list[tuple[str, Interval]] = []
        self.busy_queries: list[tuple] = []
        self.attempts: list[str] = []

    def busy_intervals(self, start, end) -> list[Interval]:
        self.busy_queries.append((start, end))
        if self.fail_busy_query:
            raise CalendarAPIError("Failed to query free/busy: backend unavailable")
        return list(self.busy)

    def create_event(self, summary: str, interval: Interval) -> str:
        self.attempts.append(summary)
        if summary in self.raising_labels:
            raise self.raising_labels[summary]
        if summary in self.failing_labels:
            raise CalendarAPIError(f"Failed to create calendar event: {summary} rejected")
        self.events.append((summary, interval))
        return f"https://calendar.example.com/event/{len(self.events)}"


class FakeDocuments:
    def __init__(self) -> None:
        self.documents: list[tuple[str, list]] = []

    def create_plan_document(self, title, subtasks) -> str:
        self.documents.append((title, list(subtasks)))
        return f"https://docs.example.com/document/{len(self.documents)}"


@pytest.fixture(scope="session", autouse=True)
def remove_test_database() -> Generator[None, None, None]:
    yield
    engine.dispose()
    TEST_DB_PATH.unlink(missing_ok=True)


@pytest.fixture()
def reset_database() -> Generator[None, None, None]:
    drop_database_schema()
    create_database_schema()
    yield


@pytest.fixture()
def db_session(reset_database) -> Generator:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def fake_calendar() -> FakeCalendar:
    return FakeCalendar()


@pytest.fixture()
def fake_documents() -> FakeDocuments:
    return FakeDocuments()


@pytest.fixture()
def client(reset_database, fake_calendar, fake_documents) -> Generator[TestClient, None, None]:
    app = create_app()
    app.dependency_overrides[get_scheduling_service] = lambda: SchedulingService(
        fake_calendar, documents=fake_documents
    )
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def unconnected_client(reset_database) -> Generator[TestClient, None, None]:
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client
