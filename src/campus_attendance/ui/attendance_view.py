from __future__ import annotations

import logging
from datetime import timedelta
from tkinter import StringVar
from typing import Any, Callable

import customtkinter as ctk

from campus_attendance.data.store import AttendanceStore
from campus_attendance.models import EDIT_WINDOW_DURATION, AttendanceStatus, ClassSession, RosterEntry
from campus_attendance.services import (
    AttendanceCaptureError,
    AttendanceReconciler,
    AttendanceSessionController,
    EditWindowDisplay,
    EditWindowLocked,
    EditWindowPhase,
    GeofenceViolation,
    LocationProvider,
    LocationUnavailable,
    ReconciliationFailure,
    RosterLoader,
    RosterUnavailable,
)
from campus_attendance.ui.background import run_in_background
from campus_attendance.ui.theme import (
    ACCENT,
    ACCENT_HOVER,
    BG,
    DANGER,
    DANGER_HOVER,
    DIVIDER,
    STATUS_COLORS,
    SUCCESS,
    SURFACE,
    SURFACE_ALT,
    TEXT,
    TEXT_MUTED,
    TONE_COLORS,
    WARNING,
)
from campus_attendance.utils import format_relative_time

logger = logging.getLogger(__name__)

NO_SESSIONS_LABEL = "No class sessions"


class TakeAttendanceView(ctk.CTkFrame):
    def __init__(
        self,
        master: Any,
        store: AttendanceStore,
        location_provider: LocationProvider,
        *,
        lecturer_id: str | None = None,
        window_duration: timedelta = EDIT_WINDOW_DURATION,
    ) -> None:
        super().__init__(master, fg_color=BG)
        self._store = store
        self._lecturer_id = lecturer_id
        self._controller = AttendanceSessionController(
            RosterLoader(store),
            AttendanceReconciler(store),
            location_provider,
            window_duration=window_duration,
            scheduler=self,
            on_window_tick=self._handle_window_tick,
        )

        self._sessions: dict[str, ClassSession] = {}
        self._session_var = StringVar(value=NO_SESSIONS_LABEL)
        self._session_info_var = StringVar(value="Choose a class session to load its roster.")
        self._window_var = StringVar(value=EditWindowDisplay(EditWindowPhase.IDLE).label())
        self._status_var = StringVar(value="")
        self._window_phase = EditWindowPhase.IDLE
        self._busy = False

        self._session_menu: ctk.CTkOptionMenu | None = None
        self._roster_frame: ctk.CTkScrollableFrame | None = None
        self._window_label: ctk.CTkLabel | None = None
        self._status_label: ctk.CTkLabel | None = None
        self._mutation_buttons: list[ctk.CTkButton] = []
        self._row_buttons: list[ctk.CTkButton] = []

        self._build_widgets()
        self.refresh_sessions()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def refresh_sessions(self) -> None:
        lecturer_id = self._lecturer_id

        def _work() -> list[ClassSession]:
            return self._store.list_sessions(lecturer_id)

        def _done(sessions: list[ClassSession]) -> None:
            self._sessions = {session.label(): session for session in sessions}
            labels = list(self._sessions) or [NO_SESSIONS_LABEL]
            if self._session_menu is not None:
                self._session_menu.configure(values=labels)
            current = self._session_var.get()
            if current not in self._sessions:
                self._session_var.set(NO_SESSIONS_LABEL if not self._sessions else "Select a session")
            self._set_status(f"{len(sessions)} class session(s) available.")

        self._run_async("Loading class sessions…", _work, _done)

    def set_location_provider(self, provider: LocationProvider) -> None:
        self._controller.set_location_provider(provider)

    def set_lecturer(self, lecturer_id: str | None) -> None:
        if lecturer_id == self._lecturer_id:
            return
        self._lecturer_id = lecturer_id
        self.refresh_sessions()

    def teardown(self) -> None:
        self._controller.close()

    # ------------------------------------------------------------------
    # Layout construction
    # ------------------------------------------------------------------
    def _build_widgets(self) -> None:
        self.grid_rowconfigure(0, weight=1)
        self.grid_columnconfigure(0, weight=1)

        container = ctk.CTkFrame(self, corner_radius=14, fg_color=SURFACE)
        container.grid(row=0, column=0, padx=24, pady=24, sticky="nsew")
        container.grid_columnconfigure(0, weight=1)
        container.grid_rowconfigure(2, weight=1)

        header_row = ctk.CTkFrame(container, fg_color="transparent")
        header_row.grid(row=0, column=0, sticky="ew", padx=24, pady=(24, 8))
        header_row.grid_columnconfigure(1, weight=1)

        ctk.CTkLabel(
            header_row,
            text="Take attendance",
            font=ctk.CTkFont(size=28, weight="bold"),
            text_color=TEXT,
        ).grid(row=0, column=0, sticky="w", padx=(0, 24))

        self._session_menu = ctk.CTkOptionMenu(
            header_row,
            variable=self._session_var,
            values=[NO_SESSIONS_LABEL],
            command=self._handle_session_selected,
            fg_color=SURFACE_ALT,
            button_color=ACCENT,
            button_hover_color=ACCENT_HOVER,
            text_color=TEXT,
            width=420,
            dynamic_resizing=False,
        )
        self._session_menu.grid(row=0, column=1, sticky="w")

        ctk.CTkButton(
            header_row,
            text="Refresh sessions",
            width=160,
            fg_color=SURFACE_ALT,
            hover_color=DIVIDER,
            text_color=TEXT,
            command=self.refresh_sessions,
        ).grid(row=0, column=2, sticky="e")

        info_row = ctk.CTkFrame(container, fg_color="transparent")
        info_row.grid(row=1, column=0, sticky="ew", padx=24, pady=(0, 12))
        info_row.grid_columnconfigure(0, weight=1)

        ctk.CTkLabel(
            info_row,
            textvariable=self._session_info_var,
            text_color=TEXT_MUTED,
            justify="left",
        ).grid(row=0, column=0, sticky="w")

        self._window_label = ctk.CTkLabel(
            info_row,
            textvariable=self._window_var,
            text_color=TEXT_MUTED,
            font=ctk.CTkFont(size=16, weight="bold"),
        )
        self._window_label.grid(row=0, column=1, sticky="e")

        self._roster_frame = ctk.CTkScrollableFrame(container, fg_color=SURFACE_ALT, corner_radius=12)
        self._roster_frame.grid(row=2, column=0, sticky="nsew", padx=24, pady=(0, 12))
        self._roster_frame.grid_columnconfigure(1, weight=1)

        actions = ctk.CTkFrame(container, fg_color="transparent")
        actions.grid(row=3, column=0, sticky="ew", padx=24, pady=(0, 8))
        actions.grid_columnconfigure(0, weight=1)

        ctk.CTkButton(
            actions,
            text="Select all / none",
            width=150,
            fg_color=SURFACE_ALT,
            hover_color=DIVIDER,
            text_color=TEXT,
            command=self._handle_toggle_all,
        ).grid(row=0, column=0, sticky="w")

        for column, (label, command, color, hover) in enumerate(
            (
                ("Mark selected present", self._handle_mark_selected_present, SURFACE_ALT, DIVIDER),
                ("Mark unselected absent", self._handle_mark_unselected_absent, SURFACE_ALT, DIVIDER),
                ("Submit attendance", self._handle_submit_all, ACCENT, ACCENT_HOVER),
            ),
            start=1,
        ):
            button = ctk.CTkButton(
                actions,
                text=label,
                width=190,
                fg_color=color,
                hover_color=hover,
                text_color=TEXT,
                command=command,
            )
            button.grid(row=0, column=column, padx=(8, 0))
            self._mutation_buttons.append(button)

        self._status_label = ctk.CTkLabel(
            container,
            textvariable=self._status_var,
            text_color=TEXT_MUTED,
            wraplength=900,
            justify="left",
        )
        self._status_label.grid(row=4, column=0, sticky="w", padx=24, pady=(0, 20))

        self._update_controls()

    def _render_roster(self) -> None:
        if self._roster_frame is None:
            return
        for child in self._roster_frame.winfo_children():
            child.destroy()
        self._row_buttons = []

        roster = self._controller.roster
        selected = self._controller.selected_ids
        if not roster:
            ctk.CTkLabel(
                self._roster_frame,
                text="No students to show." if self._controller.session else "No session loaded.",
                text_color=TEXT_MUTED,
            ).grid(row=0, column=0, columnspan=4, padx=16, pady=16, sticky="w")
            return

        for index, entry in enumerate(roster):
            self._render_roster_row(index, entry, entry.student_id in selected)
        self._update_controls()

    def _render_roster_row(self, index: int, entry: RosterEntry, selected: bool) -> None:
        frame = self._roster_frame
        checkbox = ctk.CTkCheckBox(
            frame,
            text=entry.display_name,
            text_color=TEXT,
            command=lambda student_id=entry.student_id: self._handle_toggle_student(student_id),
        )
        if selected:
            checkbox.select()
        checkbox.grid(row=index, column=0, sticky="w", padx=(16, 8), pady=6)

        ctk.CTkLabel(frame, text=entry.student.reg_no, text_color=TEXT_MUTED).grid(
            row=index, column=1, sticky="w", padx=8
        )

        status_text = entry.status.value
        if entry.recorded_at is not None:
            status_text = f"{status_text} · {format_relative_time(entry.recorded_at)}"
        ctk.CTkLabel(
            frame,
            text=status_text,
            text_color=STATUS_COLORS.get(entry.status.value, TEXT_MUTED),
        ).grid(row=index, column=2, sticky="w", padx=8)

        for offset, (label, status, color, hover) in enumerate(
            (
                ("Present", AttendanceStatus.PRESENT, SUCCESS, SUCCESS),
                ("Absent", AttendanceStatus.ABSENT, DANGER, DANGER_HOVER),
            )
        ):
            button = ctk.CTkButton(
                frame,
                text=label,
                width=90,
                fg_color=color,
                hover_color=hover,
                text_color=TEXT,
                command=lambda student_id=entry.student_id, value=status: self._handle_mark_student(student_id, value),
            )
            button.grid(row=index, column=3 + offset, padx=(0, 8), pady=6)
            self._row_buttons.append(button)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------
    def _handle_session_selected(self, label: str) -> None:
        session = self._sessions.get(label)
        if session is None:
            return

        fence = session.geofence
        self._session_info_var.set(
            f"{session.campus_name} · geofence {fence.radius_meters:.0f} m · "
            f"{session.duration_minutes} min{' · room ' + session.room if session.room else ''}"
        )

        def _done(roster: list[RosterEntry]) -> None:
            self._set_status(f"Loaded {len(roster)} students. Everyone is pre-selected as present.")

        self._run_async("Loading roster…", lambda: self._controller.select_session(session), _done)

    def _handle_toggle_student(self, student_id: str) -> None:
        try:
            self._controller.toggle_student(student_id)
        except AttendanceCaptureError as exc:
            self._show_error(exc)

    def _handle_toggle_all(self) -> None:
        self._controller.toggle_all()
        self._render_roster()

    def _handle_submit_all(self) -> None:
        def _done(result) -> None:
            present = sum(1 for record in result.records if record.status is AttendanceStatus.PRESENT)
            absent = len(result.records) - present
            self._set_status(f"Attendance submitted: {present} present, {absent} absent.", tone="success")

        self._run_async("Checking your location and submitting attendance…", self._controller.submit_all, _done)

    def _handle_mark_student(self, student_id: str, status: AttendanceStatus) -> None:
        def _done(_result) -> None:
            self._set_status(f"Marked as {status.value}.", tone="success")

        self._run_async(
            "Saving correction…",
            lambda: self._controller.mark_student(student_id, status),
            _done,
        )

    def _handle_mark_selected_present(self) -> None:
        def _done(result) -> None:
            self._set_status(f"{len(result.records)} selected student(s) marked present.", tone="success")

        self._run_async("Marking selected students present…", self._controller.mark_selected_present, _done)

    def _handle_mark_unselected_absent(self) -> None:
        def _done(result) -> None:
            self._set_status(f"{len(result.records)} unselected student(s) marked absent.", tone="success")

        self._run_async("Marking unselected students absent…", self._controller.mark_unselected_absent, _done)

    def _handle_window_tick(self, display: EditWindowDisplay) -> None:
        try:
            self.after(0, lambda: self._render_window(display))
        except RuntimeError as exc:
            # The main loop is gone; nothing left to render.
            logger.debug("Dropped edit-window tick: %s", exc)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _run_async(self, message: str, work: Callable[[], Any], on_success: Callable[[Any], None]) -> None:
        if self._busy:
            self._set_status("Please wait for the current action to finish.", tone="warning")
            return

        self._busy = True
        self._update_controls()
        self._set_status(message)

        def _finalize(result: Any, error: Exception | None) -> None:
            self._busy = False
            if not self.winfo_exists():
                return
            if error is not None:
                self._show_error(error)
            else:
                on_success(result)
            self._render_roster()
            self._render_window(self._controller.edit_window_display())

        run_in_background(self, work, _finalize)

    def _render_window(self, display: EditWindowDisplay) -> None:
        if not self.winfo_exists():
            return
        self._window_phase = display.phase
        self._window_var.set(display.label())
        if self._window_label is not None:
            color = {
                EditWindowPhase.EDITABLE: SUCCESS,
                EditWindowPhase.LOCKED: WARNING,
            }.get(display.phase, TEXT_MUTED)
            self._window_label.configure(text_color=color)
        self._update_controls()

    def _update_controls(self) -> None:
        enabled = not self._busy and self._window_phase is not EditWindowPhase.LOCKED
        state = "normal" if enabled else "disabled"
        for button in (*self._mutation_buttons, *self._row_buttons):
            button.configure(state=state)

    def _show_error(self, error: Exception) -> None:
        if isinstance(error, EditWindowLocked):
            prefix = "Locked"
        elif isinstance(error, LocationUnavailable):
            prefix = "Location unavailable"
        elif isinstance(error, GeofenceViolation):
            prefix = "Outside campus"
        elif isinstance(error, RosterUnavailable):
            prefix = "Roster unavailable"
        elif isinstance(error, ReconciliationFailure):
            prefix = "Not saved"
        else:
            prefix = "Unexpected error"
        logger.info("%s: %s", prefix, error)
        self._set_status(f"{prefix}: {error}", tone="warning")

    def _set_status(self, message: str, tone: str = "info") -> None:
        self._status_var.set(message)
        if self._status_label is not None:
            self._status_label.configure(text_color=TONE_COLORS.get(tone, TEXT_MUTED))
