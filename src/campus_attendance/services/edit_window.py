from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from campus_attendance.models import EDIT_WINDOW_DURATION
from campus_attendance.services.errors import EditWindowLocked
from campus_attendance.utils import format_countdown, utcnow

logger = logging.getLogger(__name__)


class EditWindowPhase(str, Enum):
    IDLE = "idle"
    EDITABLE = "editable"
    LOCKED = "locked"


@dataclass(frozen=True, slots=True)
class EditWindowDisplay:
    phase: EditWindowPhase
    remaining_seconds: Optional[int] = None

    def label(self) -> str:
        if self.phase is EditWindowPhase.EDITABLE:
            return f"Editable · {format_countdown(self.remaining_seconds)} left"
        if self.phase is EditWindowPhase.LOCKED:
            return "Locked · edit window closed"
        return "Not submitted yet"


class EditWindowTimer:
    """Edit window for one session view, derived from ``submitted_at`` and the clock.

    Nothing is counted down: every read recomputes the remaining time, so a
    suspended process sees the true deadline when it wakes up.
    """

    def __init__(
        self,
        duration: timedelta = EDIT_WINDOW_DURATION,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if duration <= timedelta(0):
            raise ValueError("Edit window duration must be positive.")
        self._duration = duration
        self._clock = clock
        self._submitted_at: Optional[datetime] = None

    @property
    def duration(self) -> timedelta:
        return self._duration

    @property
    def submitted_at(self) -> Optional[datetime]:
        return self._submitted_at

    def reset(self) -> None:
        self._submitted_at = None

    def restart(self, at: Optional[datetime] = None) -> datetime:
        self._submitted_at = at or self._clock()
        return self._submitted_at

    def remaining(self, now: Optional[datetime] = None) -> Optional[timedelta]:
        if self._submitted_at is None:
            return None
        moment = now or self._clock()
        return self._duration - (moment - self._submitted_at)

    def phase(self, now: Optional[datetime] = None) -> EditWindowPhase:
        remaining = self.remaining(now)
        if remaining is None:
            return EditWindowPhase.IDLE
        if remaining <= timedelta(0):
            return EditWindowPhase.LOCKED
        return EditWindowPhase.EDITABLE

    def is_locked(self, now: Optional[datetime] = None) -> bool:
        return self.phase(now) is EditWindowPhase.LOCKED

    def display(self, now: Optional[datetime] = None) -> EditWindowDisplay:
        moment = now or self._clock()
        phase = self.phase(moment)
        if phase is EditWindowPhase.EDITABLE:
            remaining = self.remaining(moment)
            return EditWindowDisplay(phase, int(math.ceil(remaining.total_seconds())))
        if phase is EditWindowPhase.LOCKED:
            return EditWindowDisplay(phase, 0)
        return EditWindowDisplay(phase)

    def ensure_unlocked(self, *, session_id: Optional[str] = None, operation: Optional[str] = None) -> None:
        if self.is_locked():
            minutes = int(self._duration.total_seconds() // 60)
            raise EditWindowLocked(
                f"The {minutes}-minute edit window for this session has closed; attendance is read-only.",
                session_id=session_id,
                operation=operation,
            )


class TickScheduler(Protocol):
    """The subset of the Tk ``after`` API the ticker needs."""

    def after(self, ms: int, func: Callable[[], None]) -> Any:
        raise NotImplementedError

    def after_cancel(self, id: Any) -> None:
        raise NotImplementedError


class EditWindowTicker:
    """Publish the edit-window display once per interval until the window locks."""

    def __init__(
        self,
        timer: EditWindowTimer,
        scheduler: TickScheduler,
        on_tick: Callable[[EditWindowDisplay], None],
        *,
        interval_ms: int = 1000,
    ) -> None:
        self._timer = timer
        self._scheduler = scheduler
        self._on_tick = on_tick
        self._interval_ms = interval_ms
        self._job: Any = None

    @property
    def running(self) -> bool:
        return self._job is not None

    def start(self) -> None:
        self.stop()
        self._tick()

    def stop(self) -> None:
        if self._job is None:
            return
        job, self._job = self._job, None
        try:
            self._scheduler.after_cancel(job)
        except Exception as exc:
            # Tk raises once the widget is gone; the tick is dead either way.
            logger.debug("Cancelling edit-window tick failed: %s", exc)

    def _tick(self) -> None:
        self._job = None
        display = self._timer.display()
        self._on_tick(display)
        if display.phase is EditWindowPhase.EDITABLE:
            self._job = self._scheduler.after(self._interval_ms, self._tick)
