from datetime import timezone

import pytest

from conftest import STUDENT
from portal_schedule.enrollment import EnrollmentService
from portal_schedule.errors import (
    ConflictError,
    DependentOperationFailure,
    NotFoundError,
    TransientError,
    ValidationError,
)
from portal_schedule.models import EventFilter
from portal_schedule.reconciler import MaterializationReconciler

UTC = timezone.utc


@pytest.fixture
def service(store, today):
    return EnrollmentService(store, MaterializationReconciler(store, tz=UTC, today=today))


def _materialized(store):
    return [e for e in store.events.values() if e.course_id is not None]


def test_enroll_inserts_enrollment_and_schedule(store, service):
    outcome = service.enroll(STUDENT, 101)

    assert outcome.enrolled
    assert outcome.schedule_updated
    assert outcome.course_id == "101"
    assert outcome.message == "Successfully enrolled!"
    assert (STUDENT, "101") in store.enrollments
    assert len(_materialized(store)) == 6
    outcome.raise_for_schedule()


def test_duplicate_enrollment_conflicts_without_rematerializing(store, service):
    service.enroll(STUDENT, "101")

    with pytest.raises(ConflictError):
        service.enroll(STUDENT, "101")

    assert len(_materialized(store)) == 6


def test_missing_schedule_still_enrolls(store, service):
    outcome = service.enroll(STUDENT, "303")

    assert outcome.enrolled
    assert not outcome.schedule_updated
    assert outcome.materialization.reason == "missing_schedule"
    assert "schedule not fully updated" in outcome.message
    assert (STUDENT, "303") in store.enrollments
    with pytest.raises(DependentOperationFailure) as exc_info:
        outcome.raise_for_schedule()
    assert exc_info.value.reason == "missing_schedule"


def test_materialization_failure_keeps_enrollment(monkeypatch, store, service):
    def boom(rows):
        raise TransientError("timeout")

    monkeypatch.setattr(store, "insert_events", boom)

    outcome = service.enroll(STUDENT, "101")

    assert outcome.enrolled
    assert not outcome.schedule_updated
    assert outcome.materialization.reason == "insert_failed"
    assert (STUDENT, "101") in store.enrollments


def test_enroll_unknown_course(service):
    with pytest.raises(NotFoundError):
        service.enroll(STUDENT, "999")


INVALID_COURSE_IDS = [None, "", "   ", True, "abc", "0", "-3", "1.5"]


@pytest.mark.parametrize("bad", INVALID_COURSE_IDS)
def test_enroll_invalid_course_id(store, service, bad):
    with pytest.raises(ValidationError):
        service.enroll(STUDENT, bad)

    assert store.enrollments == set()


@pytest.mark.parametrize("bad", INVALID_COURSE_IDS)
def test_unenroll_invalid_course_id(service, bad):
    with pytest.raises(ValidationError):
        service.unenroll(STUDENT, bad)


def test_course_id_is_normalized(store, service):
    outcome = service.enroll(STUDENT, " 0101 ")

    assert outcome.course_id == "101"
    assert (STUDENT, "101") in store.enrollments


def test_unenroll_removes_enrollment_and_window_rows(store, service):
    service.enroll(STUDENT, "101")

    outcome = service.unenroll(STUDENT, "101")

    assert outcome.unenrolled
    assert outcome.schedule_updated
    assert outcome.materialization.deleted == 6
    assert (STUDENT, "101") not in store.enrollments
    assert store.query_events(EventFilter(user_id=STUDENT, course_id="101")) == []


def test_unenroll_cleanup_failure_is_soft(monkeypatch, store, service):
    service.enroll(STUDENT, "101")

    def boom(event_filter):
        raise TransientError("connection reset")

    monkeypatch.setattr(store, "delete_events", boom)

    outcome = service.unenroll(STUDENT, "101")

    assert outcome.unenrolled
    assert not outcome.schedule_updated
    assert "schedule not fully updated" in outcome.message
    assert (STUDENT, "101") not in store.enrollments


def test_catalog_splits_enrolled_and_available(service):
    service.enroll(STUDENT, "202")

    catalog = service.catalog(STUDENT)

    assert [c.id for c in catalog.enrolled] == ["202"]
    assert [c.code for c in catalog.available] == ["IND303", "MATH101"]
