from __future__ import annotations

import logging
from datetime import datetime, timedelta

from campus_attendance.data.database import Database
from campus_attendance.utils import utcnow

logger = logging.getLogger(__name__)

DEMO_LECTURER_ID = "lecturer-1"

DEMO_CAMPUSES = (
    ("campus-1", "Main Campus", 40.7128, -74.0060, 100),
    ("campus-2", "North Campus", 40.7589, -73.9851, 150),
)

DEMO_DEPARTMENTS = (
    ("dept-1", "Computer Science", "campus-1"),
    ("dept-2", "Electrical Engineering", "campus-1"),
)

DEMO_BATCHES = (
    ("batch-1", "CS 2024", 1, "dept-1", "2024-2025"),
    ("batch-2", "EE 2024", 1, "dept-2", "2024-2025"),
)

DEMO_COURSES = (
    ("course-1", "Data Structures and Algorithms", "CS201", "dept-1", "batch-1", DEMO_LECTURER_ID),
    ("course-2", "Circuit Analysis", "EE101", "dept-2", "batch-2", DEMO_LECTURER_ID),
)

DEMO_STUDENTS = (
    ("student-1", "John Doe", "CS2024001", "dept-1", "batch-1", "campus-1"),
    ("student-2", "Jane Smith", "CS2024002", "dept-1", "batch-1", "campus-1"),
    ("student-3", "Bob Johnson", "CS2024003", "dept-1", "batch-1", "campus-1"),
    ("student-4", "Alice Brown", "CS2024004", "dept-1", "batch-1", "campus-1"),
    ("student-5", "Omar Haddad", "EE2024001", "dept-2", "batch-2", "campus-2"),
    ("student-6", "Mei Lin", "EE2024002", "dept-2", "batch-2", "campus-2"),
)


def seed_demo_data(database: Database, *, now: datetime | None = None) -> bool:
    """Insert the demo campus, courses, students and today's sessions.

    Returns False without touching the database when campuses already exist.
    """
    reference = (now or utcnow()).replace(minute=0, second=0, microsecond=0)
    sessions = (
        ("session-1", "course-1", "campus-1", DEMO_LECTURER_ID, reference, 60, "A101"),
        ("session-2", "course-2", "campus-2", DEMO_LECTURER_ID, reference + timedelta(hours=2), 90, "B204"),
    )

    with database.connect() as connection:
        existing = connection.execute("SELECT COUNT(*) FROM campuses").fetchone()[0]
        if int(existing or 0) > 0:
            return False

        connection.executemany(
            "INSERT INTO campuses (id, name, latitude, longitude, allowed_radius) VALUES (?, ?, ?, ?, ?)",
            DEMO_CAMPUSES,
        )
        connection.executemany(
            "INSERT INTO departments (id, name, campus_id) VALUES (?, ?, ?)",
            DEMO_DEPARTMENTS,
        )
        connection.executemany(
            "INSERT INTO batches (id, name, year_level, department_id, academic_year) VALUES (?, ?, ?, ?, ?)",
            DEMO_BATCHES,
        )
        connection.executemany(
            "INSERT INTO courses (id, name, code, department_id, batch_id, lecturer_id) VALUES (?, ?, ?, ?, ?, ?)",
            DEMO_COURSES,
        )
        connection.executemany(
            """
            INSERT INTO students (id, full_name, reg_no, department_id, batch_id, campus_id)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            DEMO_STUDENTS,
        )
        connection.executemany(
            """
            INSERT INTO class_sessions (
                id, course_id, campus_id, lecturer_id, schedule_time, duration_minutes, room
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (session_id, course_id, campus_id, lecturer_id, start.isoformat(), duration, room)
                for session_id, course_id, campus_id, lecturer_id, start, duration, room in sessions
            ],
        )

    logger.info("Seeded demo data into %s", database.path)
    return True
