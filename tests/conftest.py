"""Shared fixtures: an in-memory store, a fixed calendar date and sample courses.

Calendar used throughout (October 2026):
    Sun 18  Mon 19  Tue 20  Wed 21  Thu 22  Fri 23  Sat 24
    Sun 25  Mon 26  ...                             Sat 31
"""

from datetime import date, datetime, timezone

import pytest

from portal_schedule.config import reset_config
from portal_schedule.models import Course, WeekMask
from portal_schedule.store.memory import InMemoryStore

UTC = timezone.utc

# Wednesday; its calendar week starts on Sunday 2026-10-18
TODAY = date(2026, 10, 21)

STUDENT = "student-a"
OTHER_STUDENT = "student-b"


def at(day: int, hour: int, minute: int = 0, month: int = 10) -> datetime:
    """Aware UTC instant in 2026."""
    return datetime(2026, month, day, hour, minute, tzinfo=UTC)


@pytest.fixture(autouse=True)
def _fresh_config(monkeypatch):
    monkeypatch.setenv("TIMEZONE", "UTC")
    reset_config()
    yield
    reset_config()


@pytest.fixture
def mwf_course() -> Course:
    """Meets Monday, Wednesday, Friday 09:00-10:30."""
    return Course(
        id="101",
        title="Calculus I",
        class_start_time="09:00:00",
        class_end_time="10:30:00",
        week_mask=WeekMask.of(1, 3, 5),
        code="MATH101",
    )


@pytest.fixture
def tth_course() -> Course:
    """Meets Tuesday, Thursday 13:00-14:00."""
    return Course(
        id="202",
        title="Intro to Programming",
        class_start_time="13:00",
        class_end_time="14:00",
        week_mask=WeekMask.of(2, 4),
        code="CS202",
    )


@pytest.fixture
def unscheduled_course() -> Course:
    """Has meeting days but no class times."""
    return Course(
        id="303",
        title="Independent Study",
        week_mask=WeekMask.of(1),
        code="IND303",
    )


@pytest.fixture
def store(mwf_course, tth_course, unscheduled_course) -> InMemoryStore:
    return InMemoryStore([mwf_course, tth_course, unscheduled_course])


@pytest.fixture
def today():
    return lambda: TODAY
