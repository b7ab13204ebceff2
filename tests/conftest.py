from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

import pytest

from campus_attendance.data import Database, SQLiteAttendanceStore
from campus_attendance.data.demo import seed_demo_data
from campus_attendance.models import ClassSession, GeoPoint
from campus_attendance.services import FixedLocationProvider

START = datetime(2025, 10, 2, 9, 0, tzinfo=timezone.utc)
MAIN_CAMPUS = GeoPoint(40.7128, -74.0060)


class FakeClock:
    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeScheduler:
    """Stands in for a Tk widget's ``after``/``after_cancel``."""

    def __init__(self) -> None:
        self.jobs: dict[int, Callable[[], None]] = {}
        self.cancelled: list[int] = []
        self._ids = itertools.count(1)

    def after(self, ms: int, func: Callable[[], None]) -> int:
        job_id = next(self._ids)
        self.jobs[job_id] = func
        return job_id

    def after_cancel(self, job_id: Any) -> None:
        self.cancelled.append(job_id)
        self.jobs.pop(job_id, None)

    def run_pending(self) -> int:
        pending, self.jobs = self.jobs, {}
        for func in pending.values():
            func()
        return len(pending)


class ScriptedStore:
    """Wrap a real store so tests can fail or intercept individual calls."""

    def __init__(self, inner: Any) -> None:
        self._inner = inner
        self.failures: dict[str, Exception] = {}
        self.hooks: dict[str, Callable[[], None]] = {}
        self.calls: list[str] = []

    def _enter(self, name: str) -> None:
        self.calls.append(name)
        hook = self.hooks.get(name)
        if hook is not None:
            hook()
        failure = self.failures.get(name)
        if failure is not None:
            raise failure

    def list_sessions(self, lecturer_id=None):
        self._enter("list_sessions")
        return self._inner.list_sessions(lecturer_id)

    def get_session(self, session_id):
        self._enter("get_session")
        return self._inner.get_session(session_id)

    def fetch_students(self, *, department_id, batch_id):
        self._enter("fetch_students")
        return self._inner.fetch_students(department_id=department_id, batch_id=batch_id)

    def fetch_attendance(self, session_id):
        self._enter("fetch_attendance")
        return self._inner.fetch_attendance(session_id)

    def delete_attendance(self, session_id, student_ids=None):
        self._enter("delete_attendance")
        return self._inner.delete_attendance(session_id, student_ids)

    def insert_attendance(self, records):
        self._enter("insert_attendance")
        return self._inner.insert_attendance(records)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def database(tmp_path: Path) -> Database:
    database = Database(tmp_path / "attendance.db")
    database.initialize()
    return database


@pytest.fixture
def store(database: Database, clock: FakeClock) -> SQLiteAttendanceStore:
    seed_demo_data(database, now=clock())
    return SQLiteAttendanceStore(database)


@pytest.fixture
def scripted_store(store: SQLiteAttendanceStore) -> ScriptedStore:
    return ScriptedStore(store)


@pytest.fixture
def cs_session(store: SQLiteAttendanceStore) -> ClassSession:
    session = store.get_session("session-1")
    assert session is not None
    return session


@pytest.fixture
def ee_session(store: SQLiteAttendanceStore) -> ClassSession:
    session = store.get_session("session-2")
    assert session is not None
    return session


@pytest.fixture
def on_campus() -> FixedLocationProvider:
    return FixedLocationProvider(MAIN_CAMPUS.latitude, MAIN_CAMPUS.longitude)
