"""Merged schedule reads: ordering, flags, range bounds and partial availability."""

from datetime import date, timezone

import pytest

from conftest import OTHER_STUDENT, STUDENT, at
from portal_schedule.errors import TransientError
from portal_schedule.models import MergedEvent, NewEvent
from portal_schedule.query import ScheduleQuery, merge_events
from portal_schedule.reconciler import MaterializationReconciler

UTC = timezone.utc


@pytest.fixture
def query(store, today):
    return ScheduleQuery(store, tz=UTC, today=today, window_days=7)


def _freeform(store, title, start, end, user_id=STUDENT):
    return store.insert_event(NewEvent(user_id=user_id, title=title, start=start, end=end))


def test_two_freeform_and_one_class_meeting(store, query, today):
    _freeform(store, "Study group", at(19, 18), at(19, 20))
    _freeform(store, "Gym", at(19, 7), at(19, 8))
    store.insert_enrollment(STUDENT, "101")
    # Materialized rows must not be counted twice
    MaterializationReconciler(store, tz=UTC, today=today).on_enroll(STUDENT, store.get_course("101"))

    events = query.get_events(STUDENT, date(2026, 10, 19), date(2026, 10, 20))

    assert [(e.title, e.is_course_event) for e in events] == [
        ("Gym", False),
        ("Calculus I", True),
        ("Study group", False),
    ]
    assert events[1].id == "course-101-2026-10-19"


def test_class_meeting_twice_in_range(store, query):
    _freeform(store, "Gym", at(19, 7), at(19, 8))
    _freeform(store, "Club", at(21, 17), at(21, 18))
    store.insert_enrollment(STUDENT, "101")

    events = query.get_events(STUDENT, date(2026, 10, 19), date(2026, 10, 22))

    assert len(events) == 4
    assert [e.start for e in events] == sorted(e.start for e in events)
    assert sum(e.is_course_event for e in events) == 2


def test_ties_are_broken_by_id(store, query):
    _freeform(store, "B", at(19, 9), at(19, 10))
    store.insert_enrollment(STUDENT, "101")

    events = query.get_events(STUDENT, date(2026, 10, 19), date(2026, 10, 19))

    assert [e.id for e in events] == ["1", "course-101-2026-10-19"]


def test_range_bounds_and_ownership(store, query):
    spanning = _freeform(store, "Overnight", at(18, 22), at(19, 2))
    _freeform(store, "Too early", at(17, 9), at(17, 10))
    _freeform(store, "Too late", at(21, 0), at(21, 1))
    _freeform(store, "Not mine", at(19, 9), at(19, 10), user_id=OTHER_STUDENT)

    events = query.get_events(STUDENT, date(2026, 10, 19), date(2026, 10, 20))

    assert [e.id for e in events] == [spanning.id]


def test_courses_without_times_are_ignored(store, query):
    store.insert_enrollment(STUDENT, "303")
    assert query.get_events(STUDENT, date(2026, 10, 1), date(2026, 10, 31)) == []


def test_enrollment_fetch_failure_returns_freeform_only(monkeypatch, store, query):
    _freeform(store, "Gym", at(19, 7), at(19, 8))
    store.insert_enrollment(STUDENT, "101")

    def boom(user_id):
        raise TransientError("503")

    monkeypatch.setattr(store, "get_enrolled_courses", boom)

    events = query.get_events(STUDENT, date(2026, 10, 19), date(2026, 10, 23))

    assert [e.title for e in events] == ["Gym"]


def test_events_for_day(store, query):
    _freeform(store, "Lunch", at(20, 12), at(20, 13))
    _freeform(store, "Yesterday", at(19, 12), at(19, 13))
    store.insert_enrollment(STUDENT, "101")
    store.insert_enrollment(STUDENT, "202")

    events = query.get_events_for_day(STUDENT, date(2026, 10, 20))

    assert [(e.title, e.is_course_event) for e in events] == [
        ("Lunch", False),
        ("Intro to Programming", True),
    ]


def test_default_events_cover_window_around_today(store, query):
    store.insert_enrollment(STUDENT, "202")

    events = query.get_default_events(STUDENT)

    # Oct 14 .. Oct 28 holds T/Th on 15, 20, 22, 27
    assert [e.start.day for e in events] == [15, 20, 22, 27]


def test_merge_events_drops_repeated_ids():
    a = MergedEvent(id="x", title="A", start=at(19, 9), end=at(19, 10), is_course_event=False)
    b = MergedEvent(id="x", title="B", start=at(19, 8), end=at(19, 9), is_course_event=False)
    c = MergedEvent(id="y", title="C", start=at(19, 7), end=at(19, 8), is_course_event=True)

    merged = merge_events([a], [b, c])

    assert [e.title for e in merged] == ["C", "A"]
