from __future__ import annotations

import pytest

from campus_attendance.data import DataAccessError
from campus_attendance.services import OperationInProgress
from campus_attendance.ui.background import run_in_background


def run_and_collect(scheduler, work):
    outcomes = []
    thread = run_in_background(scheduler, work, lambda result, error: outcomes.append((result, error)))
    thread.join(5)
    scheduler.run_pending()
    return outcomes


def test_result_is_handed_back_through_the_scheduler(scheduler):
    assert run_and_collect(scheduler, lambda: [1, 2]) == [([1, 2], None)]


@pytest.mark.parametrize(
    "error",
    [
        DataAccessError("store offline"),
        OperationInProgress("busy", operation="submit_all"),
        ValueError("Unsupported datetime value: 'garbage'"),
        KeyError("campuses"),
        RuntimeError("main thread is not in main loop"),
    ],
)
def test_every_failure_still_reaches_the_callback(scheduler, error):
    def work():
        raise error

    outcomes = run_and_collect(scheduler, work)

    assert outcomes == [(None, error)]


def test_unexpected_failures_are_logged(scheduler, caplog):
    def work():
        raise TypeError("float() argument must be a string or a real number")

    with caplog.at_level("ERROR", logger="campus_attendance.ui.background"):
        run_and_collect(scheduler, work)

    assert "Background task failed unexpectedly" in caplog.text


def test_closed_window_drops_the_result_quietly(scheduler):
    def closed_after(ms, func):
        raise RuntimeError("main thread is not in main loop")

    scheduler.after = closed_after
    thread = run_in_background(scheduler, lambda: "done", lambda result, error: None)
    thread.join(5)

    assert not thread.is_alive()
