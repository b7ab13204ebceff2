from .database import Database, MigrationError
from .store import AttendanceStore, DataAccessError, SQLiteAttendanceStore

__all__ = ["AttendanceStore", "DataAccessError", "Database", "MigrationError", "SQLiteAttendanceStore"]
