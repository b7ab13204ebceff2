from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


class MigrationError(RuntimeError):
    """Raised when a schema migration script cannot be applied."""


class Database:
    """SQLite file holding campuses, rosters, class sessions and attendance.

    Two lecturers may write the same file, so connections wait ``busy_timeout``
    seconds for a competing writer instead of failing at once.
    """

    def __init__(
        self,
        db_path: Path,
        *,
        migrations_dir: Path = MIGRATIONS_DIR,
        busy_timeout: float = 5.0,
    ) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._migrations_dir = Path(migrations_dir)
        self._busy_timeout = busy_timeout

    @property
    def path(self) -> Path:
        return self._db_path

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        connection = sqlite3.connect(self._db_path, timeout=self._busy_timeout)
        connection.row_factory = sqlite3.Row
        # Attendance rows must point at real students and sessions.
        connection.execute("PRAGMA foreign_keys = ON")
        try:
            yield connection
            connection.commit()
        except Exception:
            connection.rollback()
            raise
        finally:
            connection.close()

    def applied_migrations(self) -> list[str]:
        with self.connect() as connection:
            self._ensure_migrations_table(connection)
            rows = connection.execute("SELECT name FROM schema_migrations ORDER BY name").fetchall()
        return [row["name"] for row in rows]

    def initialize(self) -> list[str]:
        """Apply pending migrations in file-name order and return their names.

        Each script runs in its own transaction together with its
        ``schema_migrations`` row, so a failing script leaves no trace and
        everything before it stays applied.
        """
        applied = set(self.applied_migrations())
        pending = [path for path in sorted(self._migrations_dir.glob("*.sql")) if path.name not in applied]
        if not pending:
            return []

        newly_applied: list[str] = []
        with self.connect() as connection:
            for migration in pending:
                script = migration.read_text(encoding="utf-8")
                name = migration.name.replace("'", "''")
                try:
                    connection.executescript(
                        f"BEGIN;\n{script}\n"
                        f"INSERT INTO schema_migrations(name) VALUES ('{name}');\nCOMMIT;"
                    )
                except sqlite3.Error as exc:
                    connection.rollback()
                    logger.error("Migration %s failed on %s: %s", migration.name, self._db_path, exc)
                    raise MigrationError(f"Migration {migration.name} could not be applied: {exc}") from exc
                logger.info("Applied migration %s to %s", migration.name, self._db_path)
                newly_applied.append(migration.name)
        return newly_applied

    @staticmethod
    def _ensure_migrations_table(connection: sqlite3.Connection) -> None:
        connection.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_migrations (
                name TEXT PRIMARY KEY,
                applied_at TEXT NOT NULL DEFAULT (datetime('now'))
            );
            """
        )
