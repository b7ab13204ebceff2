from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Iterator, Optional

from campus_attendance.models import (
    EDIT_WINDOW_DURATION,
    AttendanceStatus,
    ClassSession,
    GeoPoint,
    RosterEntry,
)
from campus_attendance.services.edit_window import (
    EditWindowDisplay,
    EditWindowTicker,
    EditWindowTimer,
    TickScheduler,
)
from campus_attendance.services.errors import (
    EditWindowLocked,
    GeofenceViolation,
    LocationUnavailable,
    NoActiveSession,
    OperationInProgress,
    StudentNotInRoster,
)
from campus_attendance.services.geofence import distance_meters, is_within_geofence
from campus_attendance.services.geolocation import LocationProvider
from campus_attendance.services.reconciler import AttendanceReconciler, ReconciliationResult
from campus_attendance.services.roster import RosterLoader
from campus_attendance.utils import utcnow

logger = logging.getLogger(__name__)


class AttendanceSessionController:
    """Single source of truth for one attendance-taking view.

    Holds the selected session, its roster as last confirmed by the store, the
    lecturer's provisional selection and the edit window. Selecting students is
    free; every write is gated on an open edit window and a position inside the
    campus geofence, in that order.
    """

    def __init__(
        self,
        roster_loader: RosterLoader,
        reconciler: AttendanceReconciler,
        location_provider: LocationProvider,
        *,
        window_duration: timedelta = EDIT_WINDOW_DURATION,
        clock: Callable[[], datetime] = utcnow,
        scheduler: Optional[TickScheduler] = None,
        on_window_tick: Optional[Callable[[EditWindowDisplay], None]] = None,
    ) -> None:
        self._roster_loader = roster_loader
        self._reconciler = reconciler
        self._location_provider = location_provider
        self._timer = EditWindowTimer(window_duration, clock=clock)
        self._on_window_tick = on_window_tick
        self._ticker = (
            EditWindowTicker(self._timer, scheduler, self._publish_tick) if scheduler is not None else None
        )

        self._state_lock = threading.RLock()
        self._busy = threading.Lock()
        self._generation = 0
        self._session: Optional[ClassSession] = None
        self._roster: list[RosterEntry] = []
        self._selected: set[str] = set()

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------
    @property
    def session(self) -> Optional[ClassSession]:
        return self._session

    @property
    def roster(self) -> list[RosterEntry]:
        with self._state_lock:
            return [replace(entry) for entry in self._roster]

    @property
    def selected_ids(self) -> frozenset[str]:
        with self._state_lock:
            return frozenset(self._selected)

    @property
    def is_busy(self) -> bool:
        return self._busy.locked()

    @property
    def submitted_at(self) -> Optional[datetime]:
        return self._timer.submitted_at

    def edit_window_display(self) -> EditWindowDisplay:
        return self._timer.display()

    def set_location_provider(self, provider: LocationProvider) -> None:
        self._location_provider = provider

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    def select_session(self, session: ClassSession) -> list[RosterEntry]:
        """Load ``session``'s roster, pre-select everyone and reset the edit window."""
        with self._state_lock:
            self._generation += 1
            generation = self._generation
            self._timer.reset()
            self._session = None
            self._roster = []
            self._selected = set()
        self._stop_ticker()

        roster = self._roster_loader.load(session)

        with self._state_lock:
            if generation != self._generation:
                logger.debug("Roster for session %s arrived after another selection; dropped", session.id)
                return [replace(entry) for entry in roster]
            self._session = session
            self._roster = roster
            self._selected = {entry.student_id for entry in roster}
            logger.info("Selected session %s with %d students", session.id, len(roster))
            return self.roster

    def close(self) -> None:
        with self._state_lock:
            self._generation += 1
            self._timer.reset()
            self._session = None
            self._roster = []
            self._selected = set()
        self._stop_ticker()

    # ------------------------------------------------------------------
    # Provisional selection
    # ------------------------------------------------------------------
    def toggle_student(self, student_id: str) -> bool:
        with self._state_lock:
            self._require_roster_member(student_id, "toggle_student")
            if student_id in self._selected:
                self._selected.discard(student_id)
                return False
            self._selected.add(student_id)
            return True

    def toggle_all(self) -> frozenset[str]:
        with self._state_lock:
            everyone = {entry.student_id for entry in self._roster}
            if everyone and self._selected >= everyone:
                self._selected = set()
            else:
                self._selected = everyone
            return frozenset(self._selected)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def submit_all(self) -> ReconciliationResult:
        """Record selected students as present and everyone else as absent."""
        operation = "submit_all"
        with self._mutation(operation):
            session, generation, location = self._authorize(operation)
            with self._state_lock:
                decisions = {
                    entry.student_id: (
                        AttendanceStatus.PRESENT if entry.student_id in self._selected else AttendanceStatus.ABSENT
                    )
                    for entry in self._roster
                }

            result = self._reconciler.reconcile_all(session, decisions, location)

            with self._state_lock:
                if self._is_stale(generation, result):
                    return result
                self._apply(result, full=True)
                self._timer.restart()
            self._start_ticker()
            return result

    def mark_student(self, student_id: str, status: AttendanceStatus | str) -> ReconciliationResult:
        """Correct one student's record without resubmitting the whole roster."""
        operation = "mark_student"
        status = AttendanceStatus(status)
        if not status.recordable:
            raise ValueError(f"Attendance status {status.value!r} cannot be recorded.")

        with self._mutation(operation):
            with self._state_lock:
                if self._session is not None:
                    self._require_roster_member(student_id, operation)
            session, generation, location = self._authorize(operation)
            result = self._reconciler.reconcile_partial(session, [student_id], status, location)
            return self._finish_partial(generation, result)

    def mark_selected_present(self) -> ReconciliationResult:
        operation = "mark_selected_present"
        with self._mutation(operation):
            session, generation, location = self._authorize(operation)
            with self._state_lock:
                subset = [entry.student_id for entry in self._roster if entry.student_id in self._selected]
            result = self._reconciler.reconcile_partial(session, subset, AttendanceStatus.PRESENT, location)
            return self._finish_partial(generation, result)

    def mark_unselected_absent(self) -> ReconciliationResult:
        operation = "mark_unselected_absent"
        with self._mutation(operation):
            session, generation, location = self._authorize(operation)
            with self._state_lock:
                subset = [entry.student_id for entry in self._roster if entry.student_id not in self._selected]
            result = self._reconciler.reconcile_partial(session, subset, AttendanceStatus.ABSENT, location)
            return self._finish_partial(generation, result)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @contextmanager
    def _mutation(self, operation: str) -> Iterator[None]:
        if not self._busy.acquire(blocking=False):
            raise OperationInProgress(
                "Another attendance update is still being saved. Please wait for it to finish.",
                session_id=self._session.id if self._session else None,
                operation=operation,
            )
        try:
            yield
        finally:
            self._busy.release()

    def _authorize(self, operation: str) -> tuple[ClassSession, int, GeoPoint]:
        with self._state_lock:
            session = self._session
            generation = self._generation
        if session is None:
            raise NoActiveSession("Select a class session first.", operation=operation)

        try:
            self._timer.ensure_unlocked(session_id=session.id, operation=operation)
        except EditWindowLocked:
            logger.warning("%s rejected for session %s: edit window locked", operation, session.id)
            raise

        location = self._current_location(session, operation)
        fence = session.geofence
        if not is_within_geofence(location, fence):
            distance = distance_meters(location, fence.center)
            logger.warning(
                "%s rejected for session %s: %.1f m from campus, allowed %.1f m",
                operation,
                session.id,
                distance,
                fence.radius_meters,
            )
            raise GeofenceViolation(
                f"You are {distance:.0f} m from {session.campus_name or 'campus'}. "
                f"Attendance can only be taken within {fence.radius_meters:.0f} m.",
                distance_meters=distance,
                radius_meters=fence.radius_meters,
                session_id=session.id,
                operation=operation,
            )
        return session, generation, location

    def _current_location(self, session: ClassSession, operation: str) -> GeoPoint:
        try:
            return self._location_provider.current_position()
        except Exception as exc:
            logger.warning("%s rejected for session %s: no location fix (%s)", operation, session.id, exc)
            raise LocationUnavailable(
                f"Your location could not be verified, so attendance cannot be taken: {exc}",
                radius_meters=session.geofence.radius_meters,
                session_id=session.id,
                operation=operation,
            ) from exc

    def _finish_partial(self, generation: int, result: ReconciliationResult) -> ReconciliationResult:
        with self._state_lock:
            if self._is_stale(generation, result):
                return result
            self._apply(result, full=False)
            opened = bool(result.records) and self._timer.submitted_at is None
            if opened:
                self._timer.restart()
        if opened:
            self._start_ticker()
        return result

    def _is_stale(self, generation: int, result: ReconciliationResult) -> bool:
        if generation == self._generation:
            return False
        logger.warning(
            "%s for session %s completed after the view moved on; roster left unchanged",
            result.operation,
            result.session_id,
        )
        return True

    def _apply(self, result: ReconciliationResult, *, full: bool) -> None:
        confirmed = result.by_student()
        for entry in self._roster:
            record = confirmed.get(entry.student_id)
            if record is not None:
                entry.apply(record)
            elif full:
                entry.status = AttendanceStatus.UNSET
                entry.recorded_at = None
                entry.record_id = None

    def _require_roster_member(self, student_id: str, operation: str) -> None:
        if not any(entry.student_id == student_id for entry in self._roster):
            raise StudentNotInRoster(
                f"Student {student_id} is not on this session's roster.",
                session_id=self._session.id if self._session else None,
                operation=operation,
            )

    def _publish_tick(self, display: EditWindowDisplay) -> None:
        if self._on_window_tick is not None:
            self._on_window_tick(display)

    # Ticker calls reach the Tk scheduler, so they are never made while _state_lock is held.
    def _start_ticker(self) -> None:
        if self._ticker is None:
            return
        try:
            self._ticker.start()
        except Exception:
            # The write is already confirmed; only the countdown display is lost.
            logger.exception("Edit-window countdown could not be scheduled")

    def _stop_ticker(self) -> None:
        if self._ticker is not None:
            self._ticker.stop()
