from __future__ import annotations

from datetime import timedelta

import pytest

from campus_attendance.data import DataAccessError, Database, SQLiteAttendanceStore
from campus_attendance.data.demo import DEMO_LECTURER_ID, seed_demo_data
from campus_attendance.models import AttendanceRecord, AttendanceStatus


def test_seed_runs_once(database: Database, clock) -> None:
    assert seed_demo_data(database, now=clock()) is True
    assert seed_demo_data(database, now=clock()) is False


def test_sessions_come_back_newest_first(store: SQLiteAttendanceStore, clock) -> None:
    sessions = store.list_sessions(DEMO_LECTURER_ID)

    assert [session.id for session in sessions] == ["session-2", "session-1"]
    assert sessions[1].schedule_time == clock()
    assert sessions[0].schedule_time == clock() + timedelta(hours=2)
    assert store.list_sessions("someone-else") == []
    assert len(store.list_sessions()) == 2


def test_session_carries_course_and_geofence(store: SQLiteAttendanceStore) -> None:
    session = store.get_session("session-2")

    assert session is not None
    assert session.course_code == "EE101"
    assert (session.department_id, session.batch_id) == ("dept-2", "batch-2")
    assert session.campus_name == "North Campus"
    assert session.geofence.radius_meters == 150
    assert session.geofence.center.latitude == pytest.approx(40.7589)
    assert store.get_session("missing") is None


def test_insert_and_delete_attendance(store: SQLiteAttendanceStore, clock) -> None:
    records = [
        AttendanceRecord("session-1", student_id, AttendanceStatus.PRESENT, clock(), 40.7128, -74.006)
        for student_id in ("student-1", "student-2", "student-3")
    ]

    stored = store.insert_attendance(records)

    assert all(record.id for record in stored)
    fetched = store.fetch_attendance("session-1")
    assert {record.student_id for record in fetched} == {"student-1", "student-2", "student-3"}
    assert fetched[0].timestamp == clock()

    assert store.delete_attendance("session-1", ["student-1"]) == 1
    assert store.delete_attendance("session-1", []) == 0
    assert store.delete_attendance("session-1") == 2
    assert store.fetch_attendance("session-1") == []


def test_duplicate_record_raises_data_access_error(store: SQLiteAttendanceStore, clock) -> None:
    record = AttendanceRecord("session-1", "student-1", AttendanceStatus.PRESENT, clock())
    store.insert_attendance([record])

    with pytest.raises(DataAccessError):
        store.insert_attendance([record])
