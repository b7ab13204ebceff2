from __future__ import annotations

import logging
import sqlite3
import uuid
from contextlib import contextmanager
from dataclasses import replace
from typing import Iterable, Iterator, Optional, Protocol, Sequence

from campus_attendance.data.database import Database, MigrationError
from campus_attendance.models import (
    AttendanceRecord,
    AttendanceStatus,
    ClassSession,
    GeoPoint,
    Geofence,
    Student,
)
from campus_attendance.utils import parse_timestamp

logger = logging.getLogger(__name__)


class DataAccessError(RuntimeError):
    """Raised when the attendance store cannot complete a read or write."""


class AttendanceStore(Protocol):
    def list_sessions(self, lecturer_id: Optional[str] = None) -> list[ClassSession]:
        raise NotImplementedError

    def get_session(self, session_id: str) -> Optional[ClassSession]:
        raise NotImplementedError

    def fetch_students(self, *, department_id: str, batch_id: str) -> list[Student]:
        raise NotImplementedError

    def fetch_attendance(self, session_id: str) -> list[AttendanceRecord]:
        raise NotImplementedError

    def delete_attendance(self, session_id: str, student_ids: Optional[Iterable[str]] = None) -> int:
        """Delete a session's records, or only those of ``student_ids`` when given."""

        raise NotImplementedError

    def insert_attendance(self, records: Sequence[AttendanceRecord]) -> list[AttendanceRecord]:
        """Persist ``records`` and return them with store-assigned ids."""

        raise NotImplementedError


_SESSION_COLUMNS = """
    SELECT s.id,
           s.course_id,
           c.code AS course_code,
           c.name AS course_name,
           c.department_id,
           c.batch_id,
           s.campus_id,
           cp.name AS campus_name,
           cp.latitude,
           cp.longitude,
           cp.allowed_radius,
           s.lecturer_id,
           s.schedule_time,
           s.duration_minutes,
           s.room
      FROM class_sessions AS s
INNER JOIN courses AS c ON c.id = s.course_id
INNER JOIN campuses AS cp ON cp.id = s.campus_id
"""


def session_from_row(row) -> ClassSession:
    return ClassSession(
        id=str(row["id"]),
        course_id=str(row["course_id"]),
        course_code=row["course_code"] or "",
        course_name=row["course_name"] or "",
        department_id=str(row["department_id"]),
        batch_id=str(row["batch_id"]),
        campus_id=str(row["campus_id"]),
        campus_name=row["campus_name"] or "",
        geofence=Geofence(
            center=GeoPoint(float(row["latitude"]), float(row["longitude"])),
            radius_meters=float(row["allowed_radius"]),
        ),
        lecturer_id=str(row["lecturer_id"]),
        schedule_time=parse_timestamp(row["schedule_time"]),
        duration_minutes=int(row["duration_minutes"] or 60),
        room=row["room"] or None,
    )


def student_from_row(row) -> Student:
    return Student(
        id=str(row["id"]),
        full_name=row["full_name"] or "",
        reg_no=row["reg_no"] or "",
        department_id=str(row["department_id"]),
        batch_id=str(row["batch_id"]),
    )


def attendance_from_row(row) -> AttendanceRecord:
    latitude = row["latitude"]
    longitude = row["longitude"]
    return AttendanceRecord(
        id=str(row["id"]),
        session_id=str(row["session_id"]),
        student_id=str(row["student_id"]),
        status=AttendanceStatus(row["status"]),
        timestamp=parse_timestamp(row["timestamp"]),
        latitude=float(latitude) if latitude is not None else None,
        longitude=float(longitude) if longitude is not None else None,
    )


class SQLiteAttendanceStore:
    def __init__(self, database: Database) -> None:
        self._database = database

    def initialize(self) -> None:
        try:
            self._database.initialize()
        except MigrationError as exc:
            raise DataAccessError(f"Could not prepare the attendance database: {exc}") from exc

    @contextmanager
    def _connection(self, operation: str) -> Iterator[sqlite3.Connection]:
        try:
            with self._database.connect() as connection:
                yield connection
        except sqlite3.Error as exc:
            logger.error("SQLite %s failed: %s", operation, exc)
            raise DataAccessError(f"Could not {operation}: {exc}") from exc

    def list_sessions(self, lecturer_id: Optional[str] = None) -> list[ClassSession]:
        sql = _SESSION_COLUMNS
        params: tuple = ()
        if lecturer_id:
            sql += " WHERE s.lecturer_id = ?"
            params = (lecturer_id,)
        sql += " ORDER BY s.schedule_time DESC, s.id ASC"

        with self._connection("list class sessions") as connection:
            rows = connection.execute(sql, params).fetchall()
        return [session_from_row(row) for row in rows]

    def get_session(self, session_id: str) -> Optional[ClassSession]:
        with self._connection("load class session") as connection:
            row = connection.execute(_SESSION_COLUMNS + " WHERE s.id = ?", (session_id,)).fetchone()
        return session_from_row(row) if row else None

    def fetch_students(self, *, department_id: str, batch_id: str) -> list[Student]:
        with self._connection("fetch students") as connection:
            rows = connection.execute(
                """
                SELECT id, full_name, reg_no, department_id, batch_id
                  FROM students
                 WHERE department_id = ?
                   AND batch_id = ?
              ORDER BY id ASC
                """,
                (department_id, batch_id),
            ).fetchall()
        return [student_from_row(row) for row in rows]

    def fetch_attendance(self, session_id: str) -> list[AttendanceRecord]:
        with self._connection("fetch attendance") as connection:
            rows = connection.execute(
                """
                SELECT id, session_id, student_id, status, timestamp, latitude, longitude
                  FROM attendance
                 WHERE session_id = ?
              ORDER BY timestamp ASC, id ASC
                """,
                (session_id,),
            ).fetchall()
        return [attendance_from_row(row) for row in rows]

    def delete_attendance(self, session_id: str, student_ids: Optional[Iterable[str]] = None) -> int:
        with self._connection("delete attendance") as connection:
            if student_ids is None:
                cursor = connection.execute("DELETE FROM attendance WHERE session_id = ?", (session_id,))
                return int(cursor.rowcount)

            ids = [str(student_id) for student_id in student_ids]
            if not ids:
                return 0
            placeholders = ", ".join(["?"] * len(ids))
            cursor = connection.execute(
                "DELETE FROM attendance WHERE session_id = ? AND student_id IN (" + placeholders + ")",
                (session_id, *ids),
            )
            return int(cursor.rowcount)

    def insert_attendance(self, records: Sequence[AttendanceRecord]) -> list[AttendanceRecord]:
        stored = [replace(record, id=record.id or str(uuid.uuid4())) for record in records]
        if not stored:
            return []

        with self._connection("insert attendance") as connection:
            connection.executemany(
                """
                INSERT INTO attendance (
                    id, session_id, student_id, status, timestamp, latitude, longitude
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        record.id,
                        record.session_id,
                        record.student_id,
                        record.status.value,
                        record.timestamp.isoformat(),
                        record.latitude,
                        record.longitude,
                    )
                    for record in stored
                ],
            )
        return stored
