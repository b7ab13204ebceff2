from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

from campus_attendance.config.user_settings_store import DEFAULT_SETTINGS, UserSettingsStore

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parents[3]
ENV_PATH = BASE_DIR / ".env"
load_dotenv(ENV_PATH)

APP_NAME = os.getenv("APP_NAME", "Campus Attendance")
user_settings_store = UserSettingsStore()

APP_DATA_DIR = Path(user_settings_store.get("app_data_dir", DEFAULT_SETTINGS["app_data_dir"])).expanduser()
APP_DATA_DIR.mkdir(parents=True, exist_ok=True)


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _optional_float(value: object) -> float | None:
    if value in (None, ""):
        return None
    return float(value)


@dataclass(frozen=True)
class Settings:
    app_name: str = APP_NAME
    database_path: Path = Path(os.getenv("DATABASE_PATH", str(APP_DATA_DIR / "attendance.db")))
    data_backend: str = os.getenv("DATA_BACKEND", "sqlite").strip().lower()
    supabase_url: str = os.getenv("SUPABASE_URL", "")
    supabase_key: str = os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_KEY", "")
    edit_window_minutes: int = int(os.getenv("EDIT_WINDOW_MINUTES", "15"))
    geolocation_url: str = os.getenv("GEOLOCATION_URL", "https://ipapi.co/json/")
    geolocation_timeout: float = float(os.getenv("GEOLOCATION_TIMEOUT", "5"))
    geolocation_mode: str = os.getenv("GEOLOCATION_MODE") or user_settings_store.get("geolocation_mode", "ip")
    fixed_latitude: float | None = _optional_float(
        os.getenv("FIXED_LATITUDE") or user_settings_store.get("fixed_latitude")
    )
    fixed_longitude: float | None = _optional_float(
        os.getenv("FIXED_LONGITUDE") or user_settings_store.get("fixed_longitude")
    )
    lecturer_id: str | None = os.getenv("LECTURER_ID") or user_settings_store.get("lecturer_id")
    seed_demo_data: bool = _env_flag("SEED_DEMO_DATA", default=True)
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def edit_window(self) -> timedelta:
        return timedelta(minutes=self.edit_window_minutes)


settings = Settings()


def refresh_settings_from_store() -> None:
    """Rebuild the settings object from the current user store values."""

    global settings, APP_DATA_DIR  # noqa: PLW0603 - module-level singletons

    user_settings_store.reload()

    app_data_dir = Path(user_settings_store.get("app_data_dir", DEFAULT_SETTINGS["app_data_dir"])).expanduser()
    app_data_dir.mkdir(parents=True, exist_ok=True)
    APP_DATA_DIR = app_data_dir

    settings = Settings(
        app_name=APP_NAME,
        database_path=Path(os.getenv("DATABASE_PATH", str(APP_DATA_DIR / "attendance.db"))),
        data_backend=settings.data_backend,
        supabase_url=settings.supabase_url,
        supabase_key=settings.supabase_key,
        edit_window_minutes=settings.edit_window_minutes,
        geolocation_url=settings.geolocation_url,
        geolocation_timeout=settings.geolocation_timeout,
        geolocation_mode=os.getenv("GEOLOCATION_MODE") or user_settings_store.get("geolocation_mode", "ip"),
        fixed_latitude=_optional_float(os.getenv("FIXED_LATITUDE") or user_settings_store.get("fixed_latitude")),
        fixed_longitude=_optional_float(os.getenv("FIXED_LONGITUDE") or user_settings_store.get("fixed_longitude")),
        lecturer_id=os.getenv("LECTURER_ID") or user_settings_store.get("lecturer_id"),
        seed_demo_data=settings.seed_demo_data,
        log_level=settings.log_level,
    )
    logger.debug("Settings refreshed: %s", settings)
