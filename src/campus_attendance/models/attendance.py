from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional


EDIT_WINDOW_DURATION = timedelta(minutes=15)


class AttendanceStatus(str, Enum):
    UNSET = "unset"
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"

    @property
    def recordable(self) -> bool:
        return self is not AttendanceStatus.UNSET


@dataclass(frozen=True, slots=True)
class GeoPoint:
    latitude: float
    longitude: float


@dataclass(frozen=True, slots=True)
class Geofence:
    """A campus centre plus the radius, in meters, that counts as on campus."""

    center: GeoPoint
    radius_meters: float


@dataclass(frozen=True, slots=True)
class Student:
    id: str
    full_name: str
    reg_no: str
    department_id: str
    batch_id: str

    @property
    def display_name(self) -> str:
        name = (self.full_name or "").strip()
        return name if name else (self.reg_no or self.id)


@dataclass(frozen=True, slots=True)
class ClassSession:
    id: str
    course_id: str
    course_code: str
    course_name: str
    department_id: str
    batch_id: str
    campus_id: str
    campus_name: str
    geofence: Geofence
    lecturer_id: str
    schedule_time: datetime
    duration_minutes: int = 60
    room: Optional[str] = None

    def label(self) -> str:
        parts = [self.course_code, self.course_name, self.campus_name]
        if self.room:
            parts.append(self.room)
        parts.append(self.schedule_time.strftime("%Y-%m-%d %H:%M"))
        return " · ".join(part for part in parts if part)


@dataclass(frozen=True, slots=True)
class AttendanceRecord:
    session_id: str
    student_id: str
    status: AttendanceStatus
    timestamp: datetime
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    id: Optional[str] = None

    def to_row(self) -> dict:
        return {
            "session_id": self.session_id,
            "student_id": self.student_id,
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
            "latitude": self.latitude,
            "longitude": self.longitude,
        }


@dataclass(slots=True)
class RosterEntry:
    student: Student
    status: AttendanceStatus = AttendanceStatus.UNSET
    recorded_at: Optional[datetime] = None
    record_id: Optional[str] = None

    @property
    def student_id(self) -> str:
        return self.student.id

    @property
    def display_name(self) -> str:
        return self.student.display_name

    def apply(self, record: AttendanceRecord) -> None:
        self.status = record.status
        self.recorded_at = record.timestamp
        self.record_id = record.id
