from __future__ import annotations

from typing import Optional


class AttendanceCaptureError(RuntimeError):
    """Base class for every failure the session controller reports to the UI."""

    def __init__(
        self,
        message: str,
        *,
        session_id: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.session_id = session_id
        self.operation = operation


class GeofenceViolation(AttendanceCaptureError):
    """Raised when the reporter is outside the campus geofence."""

    def __init__(
        self,
        message: str,
        *,
        distance_meters: Optional[float] = None,
        radius_meters: Optional[float] = None,
        session_id: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> None:
        super().__init__(message, session_id=session_id, operation=operation)
        self.distance_meters = distance_meters
        self.radius_meters = radius_meters


class LocationUnavailable(GeofenceViolation):
    """Raised when no position fix could be obtained, so presence cannot be proven."""


class EditWindowLocked(AttendanceCaptureError):
    """Raised when a mutation is attempted after the edit window closed."""


class RosterUnavailable(AttendanceCaptureError):
    """Raised when the roster for a session could not be loaded."""


class ReconciliationFailure(AttendanceCaptureError):
    """Raised when the delete or insert step of a reconciliation failed."""

    def __init__(
        self,
        message: str,
        *,
        stage: str,
        session_id: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> None:
        super().__init__(message, session_id=session_id, operation=operation)
        self.stage = stage


class OperationInProgress(AttendanceCaptureError):
    """Raised when a mutation is requested while another one is still running."""


class NoActiveSession(AttendanceCaptureError):
    """Raised when an operation needs a selected session and none is loaded."""


class StudentNotInRoster(AttendanceCaptureError):
    """Raised when a student id is not part of the loaded roster."""
