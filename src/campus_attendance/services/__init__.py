from .edit_window import EditWindowDisplay, EditWindowPhase, EditWindowTicker, EditWindowTimer, TickScheduler
from .errors import (
    AttendanceCaptureError,
    EditWindowLocked,
    GeofenceViolation,
    LocationUnavailable,
    NoActiveSession,
    OperationInProgress,
    ReconciliationFailure,
    RosterUnavailable,
    StudentNotInRoster,
)
from .geofence import distance_meters, is_within_geofence
from .geolocation import (
    FixedLocationProvider,
    GeolocationError,
    IPGeolocationProvider,
    LocationProvider,
    build_location_provider,
)
from .reconciler import AttendanceReconciler, ReconciliationResult
from .roster import RosterLoader
from .session_controller import AttendanceSessionController

__all__ = [
    "AttendanceCaptureError",
    "AttendanceReconciler",
    "AttendanceSessionController",
    "EditWindowDisplay",
    "EditWindowLocked",
    "EditWindowPhase",
    "EditWindowTicker",
    "EditWindowTimer",
    "FixedLocationProvider",
    "GeofenceViolation",
    "GeolocationError",
    "IPGeolocationProvider",
    "LocationProvider",
    "LocationUnavailable",
    "NoActiveSession",
    "OperationInProgress",
    "ReconciliationFailure",
    "ReconciliationResult",
    "RosterLoader",
    "RosterUnavailable",
    "StudentNotInRoster",
    "TickScheduler",
    "build_location_provider",
    "distance_meters",
    "is_within_geofence",
]
