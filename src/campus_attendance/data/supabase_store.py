from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, Sequence

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client

from campus_attendance.data.store import DataAccessError, attendance_from_row, student_from_row
from campus_attendance.models import AttendanceRecord, ClassSession, GeoPoint, Geofence, Student
from campus_attendance.utils import parse_timestamp

logger = logging.getLogger(__name__)

_supabase_client: Client | None = None

_SESSION_SELECT = (
    "id, course_id, campus_id, lecturer_id, schedule_time, duration_minutes, room, "
    "courses!inner(code, name, department_id, batch_id), "
    "campuses!inner(name, latitude, longitude, allowed_radius)"
)


def get_supabase(url: str, key: str) -> Client:
    global _supabase_client
    if _supabase_client is None:
        if not url or not key:
            raise DataAccessError("SUPABASE_URL and SUPABASE_KEY must be set to use the Supabase backend.")
        _supabase_client = create_client(url, key)
    return _supabase_client


def _embedded(row: dict, key: str) -> dict:
    value = row.get(key) or {}
    if isinstance(value, list):
        return value[0] if value else {}
    return value


def _session_from_payload(row: dict) -> ClassSession:
    course = _embedded(row, "courses")
    campus = _embedded(row, "campuses")
    return ClassSession(
        id=str(row["id"]),
        course_id=str(row["course_id"]),
        course_code=course.get("code") or "",
        course_name=course.get("name") or "",
        department_id=str(course.get("department_id")),
        batch_id=str(course.get("batch_id")),
        campus_id=str(row["campus_id"]),
        campus_name=campus.get("name") or "",
        geofence=Geofence(
            center=GeoPoint(float(campus["latitude"]), float(campus["longitude"])),
            radius_meters=float(campus["allowed_radius"]),
        ),
        lecturer_id=str(row["lecturer_id"]),
        schedule_time=parse_timestamp(row["schedule_time"]),
        duration_minutes=int(row.get("duration_minutes") or 60),
        room=row.get("room") or None,
    )


class SupabaseAttendanceStore:
    """Attendance store backed by the hosted Supabase (PostgREST) tables."""

    def __init__(self, client: Any) -> None:
        self._client = client

    def _execute(self, query: Any, operation: str) -> list[dict]:
        try:
            response = query.execute()
        except (APIError, httpx.HTTPError) as exc:
            logger.error("Supabase %s failed: %s", operation, exc)
            raise DataAccessError(f"Could not {operation}: {exc}") from exc
        return list(response.data or [])

    def list_sessions(self, lecturer_id: Optional[str] = None) -> list[ClassSession]:
        query = self._client.table("class_sessions").select(_SESSION_SELECT)
        if lecturer_id:
            query = query.eq("lecturer_id", lecturer_id)
        query = query.order("schedule_time", desc=True)
        return [_session_from_payload(row) for row in self._execute(query, "list class sessions")]

    def get_session(self, session_id: str) -> Optional[ClassSession]:
        query = self._client.table("class_sessions").select(_SESSION_SELECT).eq("id", session_id).limit(1)
        rows = self._execute(query, "load class session")
        return _session_from_payload(rows[0]) if rows else None

    def fetch_students(self, *, department_id: str, batch_id: str) -> list[Student]:
        query = (
            self._client.table("students")
            .select("id, full_name, reg_no, department_id, batch_id")
            .eq("department_id", department_id)
            .eq("batch_id", batch_id)
        )
        return [student_from_row(row) for row in self._execute(query, "fetch students")]

    def fetch_attendance(self, session_id: str) -> list[AttendanceRecord]:
        query = (
            self._client.table("attendance")
            .select("id, session_id, student_id, status, timestamp, latitude, longitude")
            .eq("session_id", session_id)
        )
        return [attendance_from_row(row) for row in self._execute(query, "fetch attendance")]

    def delete_attendance(self, session_id: str, student_ids: Optional[Iterable[str]] = None) -> int:
        query = self._client.table("attendance").delete().eq("session_id", session_id)
        if student_ids is not None:
            ids = [str(student_id) for student_id in student_ids]
            if not ids:
                return 0
            query = query.in_("student_id", ids)
        return len(self._execute(query, "delete attendance"))

    def insert_attendance(self, records: Sequence[AttendanceRecord]) -> list[AttendanceRecord]:
        if not records:
            return []
        query = self._client.table("attendance").insert([record.to_row() for record in records])
        return [attendance_from_row(row) for row in self._execute(query, "insert attendance")]
