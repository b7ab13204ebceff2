from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Mapping, Optional

from campus_attendance.data.store import AttendanceStore
from campus_attendance.models import AttendanceRecord, AttendanceStatus, ClassSession, GeoPoint
from campus_attendance.services.errors import ReconciliationFailure
from campus_attendance.utils import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReconciliationResult:
    session_id: str
    operation: str
    records: tuple[AttendanceRecord, ...]
    removed_count: int
    recorded_at: datetime

    def by_student(self) -> dict[str, AttendanceRecord]:
        return {record.student_id: record for record in self.records}


class AttendanceReconciler:
    """Replace persisted attendance for a session with a target set of decisions.

    Every reconciliation deletes the affected records and inserts fresh ones,
    so repeating a call with the same input leaves the same content behind.
    Callers are expected to have checked the geofence and edit window first.
    """

    def __init__(self, store: AttendanceStore, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._store = store
        self._clock = clock

    def reconcile_all(
        self,
        session: ClassSession,
        decisions: Mapping[str, AttendanceStatus],
        reporter_location: Optional[GeoPoint],
    ) -> ReconciliationResult:
        targets = {str(student_id): _recordable(status) for student_id, status in decisions.items()}
        return self._reconcile(
            session,
            targets,
            reporter_location,
            operation="reconcile_all",
            scope=None,
        )

    def reconcile_partial(
        self,
        session: ClassSession,
        student_ids: Iterable[str],
        status: AttendanceStatus,
        reporter_location: Optional[GeoPoint],
    ) -> ReconciliationResult:
        recordable = _recordable(status)
        subset = list(dict.fromkeys(str(student_id) for student_id in student_ids))
        if not subset:
            return ReconciliationResult(
                session_id=session.id,
                operation="reconcile_partial",
                records=(),
                removed_count=0,
                recorded_at=self._clock(),
            )
        return self._reconcile(
            session,
            {student_id: recordable for student_id in subset},
            reporter_location,
            operation="reconcile_partial",
            scope=subset,
        )

    def _reconcile(
        self,
        session: ClassSession,
        targets: dict[str, AttendanceStatus],
        reporter_location: Optional[GeoPoint],
        *,
        operation: str,
        scope: Optional[list[str]],
    ) -> ReconciliationResult:
        recorded_at = self._clock()

        try:
            removed = self._store.delete_attendance(session.id, scope)
        except Exception as exc:
            logger.error("Deleting attendance for session %s failed: %s", session.id, exc)
            raise ReconciliationFailure(
                f"Attendance could not be cleared before recording: {exc}",
                stage="delete",
                session_id=session.id,
                operation=operation,
            ) from exc

        pending = [
            AttendanceRecord(
                session_id=session.id,
                student_id=student_id,
                status=status,
                timestamp=recorded_at,
                latitude=reporter_location.latitude if reporter_location else None,
                longitude=reporter_location.longitude if reporter_location else None,
            )
            for student_id, status in targets.items()
        ]

        try:
            stored = self._store.insert_attendance(pending)
        except Exception as exc:
            # The affected students now have no record at all; a retry restores them.
            logger.error(
                "Inserting %d attendance records for session %s failed after delete: %s",
                len(pending),
                session.id,
                exc,
            )
            raise ReconciliationFailure(
                f"Attendance was not recorded, please try again: {exc}",
                stage="insert",
                session_id=session.id,
                operation=operation,
            ) from exc

        logger.info(
            "%s for session %s: removed %d, recorded %d",
            operation,
            session.id,
            removed,
            len(stored),
        )
        return ReconciliationResult(
            session_id=session.id,
            operation=operation,
            records=tuple(stored),
            removed_count=int(removed or 0),
            recorded_at=recorded_at,
        )


def _recordable(status: AttendanceStatus | str) -> AttendanceStatus:
    value = AttendanceStatus(status)
    if not value.recordable:
        raise ValueError(f"Attendance status {value.value!r} cannot be recorded.")
    return value
