from __future__ import annotations

from pathlib import Path
from tkinter import StringVar
from typing import Any, Callable

import customtkinter as ctk
from customtkinter import filedialog

from campus_attendance.config.user_settings_store import DEFAULT_SETTINGS, UserSettingsStore
from campus_attendance.ui.theme import (
    ACCENT,
    ACCENT_HOVER,
    BG,
    BORDER,
    DIVIDER,
    SURFACE,
    SURFACE_ALT,
    TEXT,
    TEXT_MUTED,
    TONE_COLORS,
)

LOCATION_MODE_LABELS = {"ip": "Network lookup", "fixed": "Fixed position"}


class SettingsView(ctk.CTkFrame):
    """Location and data-folder settings backed by the UserSettingsStore."""

    def __init__(
        self,
        master: Any,
        *,
        store: UserSettingsStore,
        on_settings_saved: Callable[[dict[str, Any]], None] | None = None,
    ) -> None:
        super().__init__(master, fg_color=BG)
        self._store = store
        self._on_settings_saved = on_settings_saved

        self._mode_var = StringVar(value=LOCATION_MODE_LABELS["ip"])
        self._latitude_var = StringVar()
        self._longitude_var = StringVar()
        self._lecturer_var = StringVar()
        self._app_data_dir_var = StringVar()
        self._status_label: ctk.CTkLabel | None = None

        self._build_layout()
        self.refresh()

    def refresh(self) -> None:
        data = self._store.data
        mode = data.get("geolocation_mode") or DEFAULT_SETTINGS["geolocation_mode"]
        self._mode_var.set(LOCATION_MODE_LABELS.get(mode, LOCATION_MODE_LABELS["ip"]))
        self._latitude_var.set(self._format_optional(data.get("fixed_latitude")))
        self._longitude_var.set(self._format_optional(data.get("fixed_longitude")))
        self._lecturer_var.set(data.get("lecturer_id") or "")
        self._app_data_dir_var.set(str(data.get("app_data_dir", DEFAULT_SETTINGS["app_data_dir"])))
        self._set_status("")

    # ------------------------------------------------------------------
    # Layout helpers
    # ------------------------------------------------------------------
    def _build_layout(self) -> None:
        self.grid_rowconfigure(0, weight=1)
        self.grid_columnconfigure(0, weight=1)

        container = ctk.CTkFrame(self, fg_color=SURFACE, corner_radius=18)
        container.grid(row=0, column=0, padx=24, pady=24, sticky="nsew")
        container.grid_columnconfigure(1, weight=1)

        ctk.CTkLabel(
            container,
            text="Settings",
            font=ctk.CTkFont(size=28, weight="bold"),
            text_color=TEXT,
        ).grid(row=0, column=0, columnspan=2, sticky="w", padx=28, pady=(28, 8))

        ctk.CTkLabel(
            container,
            text=(
                "Attendance can only be recorded from inside the campus geofence. Choose how this machine "
                "reports its position, and which lecturer's sessions should be listed."
            ),
            justify="left",
            wraplength=640,
            text_color=TEXT_MUTED,
        ).grid(row=1, column=0, columnspan=2, sticky="w", padx=28, pady=(0, 20))

        ctk.CTkLabel(container, text="Location source", text_color=TEXT, font=ctk.CTkFont(size=18)).grid(
            row=2, column=0, sticky="w", padx=28, pady=(0, 14)
        )
        ctk.CTkSegmentedButton(
            container,
            values=list(LOCATION_MODE_LABELS.values()),
            variable=self._mode_var,
            selected_color=ACCENT,
            selected_hover_color=ACCENT_HOVER,
        ).grid(row=2, column=1, sticky="w", padx=(0, 28), pady=(0, 14))

        row = self._build_entry_field(
            container,
            row=3,
            label="Fixed latitude",
            variable=self._latitude_var,
            helper="Used only with a fixed position, e.g. a lecture-hall kiosk.",
        )
        row = self._build_entry_field(container, row=row, label="Fixed longitude", variable=self._longitude_var)
        row = self._build_entry_field(
            container,
            row=row,
            label="Lecturer ID",
            variable=self._lecturer_var,
            helper="Leave blank to list every session in the database.",
        )
        row = self._build_app_data_field(container, row=row)

        buttons_row = ctk.CTkFrame(container, fg_color=SURFACE)
        buttons_row.grid(row=row, column=0, columnspan=2, sticky="ew", padx=28, pady=(12, 24))
        buttons_row.grid_columnconfigure(0, weight=1)

        ctk.CTkButton(
            buttons_row,
            text="Reset to defaults",
            width=160,
            text_color=TEXT,
            fg_color=SURFACE_ALT,
            hover_color=DIVIDER,
            command=self._handle_reset,
        ).grid(row=0, column=1, padx=(0, 8))

        ctk.CTkButton(
            buttons_row,
            text="Save changes",
            width=180,
            text_color=TEXT,
            fg_color=ACCENT,
            hover_color=ACCENT_HOVER,
            command=self._handle_save,
        ).grid(row=0, column=2)

        self._status_label = ctk.CTkLabel(container, text="", text_color=TEXT_MUTED, wraplength=640, justify="left")
        self._status_label.grid(row=row + 1, column=0, columnspan=2, sticky="w", padx=28, pady=(0, 12))

    def _build_entry_field(
        self,
        parent: ctk.CTkFrame,
        *,
        row: int,
        label: str,
        variable: StringVar,
        helper: str = "",
    ) -> int:
        ctk.CTkLabel(parent, text=label, text_color=TEXT, font=ctk.CTkFont(size=18)).grid(
            row=row, column=0, sticky="w", padx=28, pady=(0, 6)
        )
        ctk.CTkEntry(
            parent,
            textvariable=variable,
            width=220,
            fg_color=BG,
            border_color=BORDER,
            text_color=TEXT,
        ).grid(row=row, column=1, sticky="w", padx=(0, 28), pady=(0, 6))

        if not helper:
            return row + 1
        ctk.CTkLabel(parent, text=helper, text_color=TEXT_MUTED, font=ctk.CTkFont(size=14)).grid(
            row=row + 1, column=0, columnspan=2, sticky="w", padx=28, pady=(0, 14)
        )
        return row + 2

    def _build_app_data_field(self, parent: ctk.CTkFrame, *, row: int) -> int:
        ctk.CTkLabel(parent, text="App data directory", text_color=TEXT, font=ctk.CTkFont(size=18)).grid(
            row=row, column=0, sticky="w", padx=28, pady=(0, 6)
        )

        field_container = ctk.CTkFrame(parent, fg_color=SURFACE)
        field_container.grid(row=row, column=1, sticky="w", padx=(0, 28), pady=(0, 6))

        ctk.CTkEntry(
            field_container,
            textvariable=self._app_data_dir_var,
            fg_color=BG,
            border_color=BORDER,
            text_color=TEXT,
            width=540,
        ).grid(row=0, column=0, sticky="w", padx=(0, 12))

        ctk.CTkButton(
            field_container,
            text="Browse",
            width=100,
            text_color=TEXT,
            fg_color=SURFACE_ALT,
            hover_color=DIVIDER,
            command=self._choose_app_data_dir,
        ).grid(row=0, column=1, sticky="w")
        return row + 1

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    def _handle_reset(self) -> None:
        self._mode_var.set(LOCATION_MODE_LABELS[DEFAULT_SETTINGS["geolocation_mode"]])
        self._latitude_var.set("")
        self._longitude_var.set("")
        self._lecturer_var.set("")
        self._set_status("Fields reset. Save to persist the changes.")

    def _handle_save(self) -> None:
        mode = next(
            (key for key, label in LOCATION_MODE_LABELS.items() if label == self._mode_var.get()),
            "ip",
        )
        if mode == "fixed" and not (self._latitude_var.get().strip() and self._longitude_var.get().strip()):
            self._set_status("A fixed position needs both a latitude and a longitude.", tone="warning")
            return

        try:
            updated = self._store.update(
                geolocation_mode=mode,
                fixed_latitude=self._latitude_var.get().strip(),
                fixed_longitude=self._longitude_var.get().strip(),
                lecturer_id=self._lecturer_var.get().strip(),
                app_data_dir=self._app_data_dir_var.get().strip(),
            )
        except (ValueError, OSError) as exc:
            self._set_status(str(exc), tone="warning")
            return

        self.refresh()
        self._set_status("Settings saved successfully.", tone="success")
        if self._on_settings_saved is not None:
            self._on_settings_saved(updated)

    def _choose_app_data_dir(self) -> None:
        selected = filedialog.askdirectory(
            title="Select app data directory",
            initialdir=self._app_data_dir_var.get().strip() or None,
        )
        if selected:
            self._app_data_dir_var.set(str(Path(selected).expanduser()))

    def _set_status(self, message: str, *, tone: str = "info") -> None:
        if self._status_label is None:
            return
        self._status_label.configure(text=message, text_color=TONE_COLORS.get(tone, TEXT_MUTED))

    @staticmethod
    def _format_optional(value: Any) -> str:
        return "" if value in (None, "") else str(value)
