from __future__ import annotations

import logging
import threading
from typing import Any, Callable

from campus_attendance.data.store import DataAccessError
from campus_attendance.services import AttendanceCaptureError, TickScheduler

logger = logging.getLogger(__name__)


def run_in_background(
    scheduler: TickScheduler,
    work: Callable[[], Any],
    on_done: Callable[[Any, Exception | None], None],
) -> threading.Thread:
    """Run ``work`` on a daemon thread and hand its outcome back through ``scheduler.after``.

    ``on_done(result, error)`` is scheduled whatever ``work`` raised, so the
    caller can always clear its busy state.
    """

    def _worker() -> None:
        result: Any = None
        error: Exception | None = None
        try:
            result = work()
        except (AttendanceCaptureError, DataAccessError) as exc:
            error = exc
        except Exception as exc:
            logger.exception("Background task failed unexpectedly")
            error = exc

        try:
            scheduler.after(0, lambda: on_done(result, error))
        except RuntimeError as exc:
            logger.debug("Background result dropped, the window is gone: %s", exc)

    thread = threading.Thread(target=_worker, daemon=True)
    thread.start()
    return thread
