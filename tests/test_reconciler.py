from __future__ import annotations

import pytest

from campus_attendance.data import DataAccessError
from campus_attendance.models import AttendanceStatus, GeoPoint
from campus_attendance.services import AttendanceReconciler, ReconciliationFailure

CS_STUDENTS = ("student-1", "student-2", "student-3", "student-4")
REPORTER = GeoPoint(40.7128, -74.0060)


def snapshot(store, session_id):
    return {record.student_id: record.status for record in store.fetch_attendance(session_id)}


def test_reconcile_all_writes_exactly_one_record_per_decision(store, cs_session, clock):
    reconciler = AttendanceReconciler(store, clock=clock)
    decisions = {student_id: AttendanceStatus.PRESENT for student_id in CS_STUDENTS}
    decisions["student-3"] = AttendanceStatus.ABSENT

    result = reconciler.reconcile_all(cs_session, decisions, REPORTER)

    assert snapshot(store, cs_session.id) == decisions
    assert len(result.records) == 4
    assert result.removed_count == 0
    assert result.recorded_at == clock()
    assert all(record.latitude == REPORTER.latitude for record in result.records)
    assert all(record.id for record in result.records)


def test_reconcile_all_is_idempotent(store, cs_session, clock):
    reconciler = AttendanceReconciler(store, clock=clock)
    decisions = {student_id: AttendanceStatus.PRESENT for student_id in CS_STUDENTS}

    reconciler.reconcile_all(cs_session, decisions, REPORTER)
    clock.advance(minutes=1)
    second = reconciler.reconcile_all(cs_session, decisions, REPORTER)

    assert snapshot(store, cs_session.id) == decisions
    assert len(store.fetch_attendance(cs_session.id)) == 4
    assert second.removed_count == 4


def test_reconcile_all_drops_students_left_out(store, cs_session, clock):
    reconciler = AttendanceReconciler(store, clock=clock)
    reconciler.reconcile_all(cs_session, {sid: AttendanceStatus.PRESENT for sid in CS_STUDENTS}, REPORTER)

    reconciler.reconcile_all(cs_session, {"student-1": AttendanceStatus.ABSENT}, REPORTER)

    assert snapshot(store, cs_session.id) == {"student-1": AttendanceStatus.ABSENT}


def test_reconcile_partial_only_touches_the_subset(store, cs_session, clock):
    reconciler = AttendanceReconciler(store, clock=clock)
    reconciler.reconcile_all(cs_session, {sid: AttendanceStatus.PRESENT for sid in CS_STUDENTS}, REPORTER)

    result = reconciler.reconcile_partial(
        cs_session, ["student-2", "student-2", "student-4"], AttendanceStatus.LATE, REPORTER
    )

    assert [record.student_id for record in result.records] == ["student-2", "student-4"]
    assert snapshot(store, cs_session.id) == {
        "student-1": AttendanceStatus.PRESENT,
        "student-2": AttendanceStatus.LATE,
        "student-3": AttendanceStatus.PRESENT,
        "student-4": AttendanceStatus.LATE,
    }


def test_reconcile_partial_with_empty_subset_skips_the_store(scripted_store, cs_session, clock):
    reconciler = AttendanceReconciler(scripted_store, clock=clock)

    result = reconciler.reconcile_partial(cs_session, [], AttendanceStatus.PRESENT, REPORTER)

    assert result.records == ()
    assert scripted_store.calls == []


def test_unset_is_not_recordable(store, cs_session):
    reconciler = AttendanceReconciler(store)

    with pytest.raises(ValueError):
        reconciler.reconcile_all(cs_session, {"student-1": AttendanceStatus.UNSET}, REPORTER)
    with pytest.raises(ValueError):
        reconciler.reconcile_partial(cs_session, ["student-1"], "unset", REPORTER)


@pytest.mark.parametrize("stage", ["delete", "insert"])
def test_store_failure_reports_the_stage(scripted_store, store, cs_session, clock, stage):
    reconciler = AttendanceReconciler(scripted_store, clock=clock)
    reconciler.reconcile_all(cs_session, {sid: AttendanceStatus.PRESENT for sid in CS_STUDENTS}, REPORTER)
    scripted_store.failures[f"{stage}_attendance"] = DataAccessError("store offline")

    with pytest.raises(ReconciliationFailure) as excinfo:
        reconciler.reconcile_partial(cs_session, ["student-1"], AttendanceStatus.ABSENT, REPORTER)

    assert excinfo.value.stage == stage
    assert excinfo.value.operation == "reconcile_partial"
    if stage == "delete":
        assert snapshot(store, cs_session.id)["student-1"] is AttendanceStatus.PRESENT
    else:
        assert "student-1" not in snapshot(store, cs_session.id)


def test_retry_after_insert_failure_restores_the_record(scripted_store, store, cs_session, clock):
    reconciler = AttendanceReconciler(scripted_store, clock=clock)
    scripted_store.failures["insert_attendance"] = DataAccessError("timeout")
    with pytest.raises(ReconciliationFailure):
        reconciler.reconcile_partial(cs_session, ["student-1"], AttendanceStatus.PRESENT, REPORTER)

    del scripted_store.failures["insert_attendance"]
    reconciler.reconcile_partial(cs_session, ["student-1"], AttendanceStatus.PRESENT, REPORTER)

    assert snapshot(store, cs_session.id) == {"student-1": AttendanceStatus.PRESENT}
