from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from campus_attendance.data import DataAccessError, Database, MigrationError, SQLiteAttendanceStore


def test_initialize_creates_tables(tmp_path: Path) -> None:
    db_path = tmp_path / "attendance.db"
    database = Database(db_path)
    database.initialize()

    with database.connect() as connection:
        tables = {
            row[0]
            for row in connection.execute(
                "SELECT name FROM sqlite_master WHERE type='table'"
            )
        }

    expected_tables = {
        "campuses",
        "departments",
        "batches",
        "courses",
        "students",
        "class_sessions",
        "attendance",
        "schema_migrations",
    }

    assert expected_tables.issubset(tables)


def test_initialize_is_repeatable(tmp_path: Path) -> None:
    database = Database(tmp_path / "nested" / "attendance.db")
    database.initialize()
    database.initialize()

    with database.connect() as connection:
        applied = connection.execute("SELECT COUNT(*) FROM schema_migrations").fetchone()[0]

    assert applied == 1


def test_attendance_rejects_unknown_status(database: Database, store) -> None:
    with pytest.raises(sqlite3.IntegrityError):
        with database.connect() as connection:
            connection.execute(
                "INSERT INTO attendance (id, session_id, student_id, status, timestamp) VALUES (?, ?, ?, ?, ?)",
                ("a-1", "session-1", "student-1", "excused", "2025-10-02T09:00:00+00:00"),
            )


def test_attendance_is_unique_per_session_and_student(database: Database, store) -> None:
    insert = "INSERT INTO attendance (id, session_id, student_id, status, timestamp) VALUES (?, ?, ?, ?, ?)"
    with database.connect() as connection:
        connection.execute(insert, ("a-1", "session-1", "student-1", "present", "2025-10-02T09:00:00+00:00"))

    with pytest.raises(sqlite3.IntegrityError):
        with database.connect() as connection:
            connection.execute(insert, ("a-2", "session-1", "student-1", "absent", "2025-10-02T09:01:00+00:00"))


def test_initialize_reports_what_it_applied(tmp_path: Path) -> None:
    database = Database(tmp_path / "attendance.db")

    assert database.initialize() == ["0001_initial_schema.sql"]
    assert database.initialize() == []
    assert database.applied_migrations() == ["0001_initial_schema.sql"]


def test_failing_migration_rolls_back_alone(tmp_path: Path) -> None:
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "0001_rooms.sql").write_text("CREATE TABLE rooms (id TEXT PRIMARY KEY);", encoding="utf-8")
    (migrations / "0002_broken.sql").write_text(
        "CREATE TABLE half_done (id TEXT);\nINSERT INTO missing_table VALUES (1);",
        encoding="utf-8",
    )
    database = Database(tmp_path / "attendance.db", migrations_dir=migrations)

    with pytest.raises(MigrationError, match="0002_broken.sql"):
        database.initialize()

    with database.connect() as connection:
        tables = {row[0] for row in connection.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    assert "rooms" in tables
    assert "half_done" not in tables
    assert database.applied_migrations() == ["0001_rooms.sql"]


def test_store_reports_migration_failure_as_data_access_error(tmp_path: Path) -> None:
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "0001_broken.sql").write_text("CREATE TABLE (;", encoding="utf-8")
    store = SQLiteAttendanceStore(Database(tmp_path / "attendance.db", migrations_dir=migrations))

    with pytest.raises(DataAccessError):
        store.initialize()
