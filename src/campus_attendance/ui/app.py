from __future__ import annotations

import logging

import tkinter.messagebox as messagebox

import customtkinter as ctk

from campus_attendance.config import settings as settings_module
from campus_attendance.config.settings import Settings, refresh_settings_from_store, user_settings_store
from campus_attendance.data import AttendanceStore, DataAccessError, Database, SQLiteAttendanceStore
from campus_attendance.data.demo import seed_demo_data
from campus_attendance.services import LocationProvider, build_location_provider
from campus_attendance.ui.attendance_view import TakeAttendanceView
from campus_attendance.ui.settings_view import SettingsView
from campus_attendance.ui.theme import BG, SURFACE

logger = logging.getLogger(__name__)

TAKE_ATTENDANCE_TAB = "Take attendance"
SETTINGS_TAB = "Settings"


def build_store(config: Settings) -> AttendanceStore:
    """Create the attendance store for the configured backend."""
    if config.data_backend == "supabase":
        # Imported lazily so the local backend works without the Supabase client installed.
        from campus_attendance.data.supabase_store import SupabaseAttendanceStore, get_supabase

        logger.info("Using Supabase backend at %s", config.supabase_url)
        return SupabaseAttendanceStore(get_supabase(config.supabase_url, config.supabase_key))

    if config.data_backend != "sqlite":
        raise ValueError(f"Unknown data backend: {config.data_backend!r}")

    database = Database(config.database_path)
    store = SQLiteAttendanceStore(database)
    store.initialize()
    if config.seed_demo_data and seed_demo_data(database):
        logger.info("Seeded demo campuses, courses and students into %s", database.path)
    logger.info("Using SQLite backend at %s", database.path)
    return store


def build_provider(config: Settings) -> LocationProvider:
    return build_location_provider(
        config.geolocation_mode,
        url=config.geolocation_url,
        timeout=config.geolocation_timeout,
        fixed_latitude=config.fixed_latitude,
        fixed_longitude=config.fixed_longitude,
    )


class CampusAttendanceApp:
    def __init__(self) -> None:
        config = settings_module.settings

        ctk.set_appearance_mode("dark")

        self._root = ctk.CTk()
        self._root.title(config.app_name)
        self._root.geometry("1280x720")
        self._root.minsize(1080, 640)
        self._root.configure(fg_color=BG)
        self._root.grid_rowconfigure(0, weight=1)
        self._root.grid_columnconfigure(0, weight=1)

        self._database_path = config.database_path
        self._store = build_store(config)

        tabs = ctk.CTkTabview(self._root, fg_color=SURFACE)
        tabs.grid(row=0, column=0, sticky="nsew", padx=12, pady=12)
        attendance_tab = tabs.add(TAKE_ATTENDANCE_TAB)
        settings_tab = tabs.add(SETTINGS_TAB)
        for tab in (attendance_tab, settings_tab):
            tab.grid_rowconfigure(0, weight=1)
            tab.grid_columnconfigure(0, weight=1)
        self._tabs = tabs

        self._take_attendance_view = self._build_attendance_view(attendance_tab, config)
        self._settings_view = SettingsView(
            settings_tab,
            store=user_settings_store,
            on_settings_saved=self._handle_settings_saved,
        )
        self._settings_view.grid(row=0, column=0, sticky="nsew")

        tabs.set(TAKE_ATTENDANCE_TAB)
        self._root.protocol("WM_DELETE_WINDOW", self._on_close)

    def _build_attendance_view(self, master: ctk.CTkFrame, config: Settings) -> TakeAttendanceView:
        view = TakeAttendanceView(
            master,
            self._store,
            build_provider(config),
            lecturer_id=config.lecturer_id,
            window_duration=config.edit_window,
        )
        view.grid(row=0, column=0, sticky="nsew")
        return view

    def _handle_settings_saved(self, _updated: dict[str, object]) -> None:
        refresh_settings_from_store()
        config = settings_module.settings

        if config.data_backend == "sqlite" and config.database_path != self._database_path:
            try:
                store = build_store(config)
            except (DataAccessError, OSError) as exc:
                logger.error("Could not open database at %s: %s", config.database_path, exc)
                messagebox.showwarning(title="Database unavailable", message=str(exc))
                return
            self._database_path = config.database_path
            self._store = store
            master = self._take_attendance_view.master
            self._take_attendance_view.teardown()
            self._take_attendance_view.destroy()
            self._take_attendance_view = self._build_attendance_view(master, config)
            return

        self._take_attendance_view.set_location_provider(build_provider(config))
        self._take_attendance_view.set_lecturer(config.lecturer_id)

    def _on_close(self) -> None:
        self._take_attendance_view.teardown()
        self._root.destroy()

    def run(self) -> None:
        self._root.mainloop()
