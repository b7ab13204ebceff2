from __future__ import annotations

import logging

from campus_attendance.data.store import AttendanceStore
from campus_attendance.models import AttendanceRecord, ClassSession, RosterEntry
from campus_attendance.services.errors import RosterUnavailable

logger = logging.getLogger(__name__)


class RosterLoader:
    """Build the list of students a lecturer marks for one class session."""

    def __init__(self, store: AttendanceStore) -> None:
        self._store = store

    def load(self, session: ClassSession) -> list[RosterEntry]:
        """Return the session's students with their current attendance.

        Students must match both the department and the batch of the session's
        course. Attendance records for anyone outside that set are ignored.
        Raises ``RosterUnavailable`` if either fetch fails; a partial roster is
        never returned.
        """
        try:
            students = self._store.fetch_students(
                department_id=session.department_id,
                batch_id=session.batch_id,
            )
            records = self._store.fetch_attendance(session.id)
        except Exception as exc:
            logger.error("Roster for session %s could not be loaded: %s", session.id, exc)
            raise RosterUnavailable(
                f"Could not load the roster for {session.course_code or session.id}: {exc}",
                session_id=session.id,
                operation="load_roster",
            ) from exc

        latest: dict[str, AttendanceRecord] = {}
        for record in records:
            if record.session_id != session.id:
                continue
            current = latest.get(record.student_id)
            if current is None or record.timestamp >= current.timestamp:
                latest[record.student_id] = record

        entries: list[RosterEntry] = []
        seen: set[str] = set()
        for student in students:
            if student.department_id != session.department_id or student.batch_id != session.batch_id:
                continue
            if student.id in seen:
                continue
            seen.add(student.id)

            entry = RosterEntry(student=student)
            record = latest.get(student.id)
            if record is not None:
                entry.apply(record)
            entries.append(entry)

        entries.sort(key=lambda entry: entry.display_name.casefold())
        logger.debug("Loaded %d roster entries for session %s", len(entries), session.id)
        return entries
