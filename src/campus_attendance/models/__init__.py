from .attendance import (
    EDIT_WINDOW_DURATION,
    AttendanceRecord,
    AttendanceStatus,
    ClassSession,
    GeoPoint,
    Geofence,
    RosterEntry,
    Student,
)

__all__ = [
    "EDIT_WINDOW_DURATION",
    "AttendanceRecord",
    "AttendanceStatus",
    "ClassSession",
    "GeoPoint",
    "Geofence",
    "RosterEntry",
    "Student",
]
