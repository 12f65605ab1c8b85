"""Recurrence projector - derives concrete course meetings from a weekly pattern.

Given a course's week mask and class time window, yields one occurrence per
matching calendar day in an inclusive date range. Pure function of its inputs:
calling it twice with the same arguments yields the same ids and instants.
"""

from collections.abc import Iterator
from datetime import date, datetime, tzinfo

from portal_schedule.config import get_config
from portal_schedule.errors import ValidationError
from portal_schedule.logging import get_logger
from portal_schedule.models import Course, ProjectedOccurrence
from portal_schedule.timeutils import (
    as_date,
    iter_days,
    parse_time_of_day,
    resolve_timezone,
    synthetic_id,
    weekday_index,
)

log = get_logger(__name__)


def _default_tz() -> tzinfo:
    return resolve_timezone(get_config().timezone)


def build_occurrence(course: Course, day: date, tz: tzinfo) -> ProjectedOccurrence:
    """Build the occurrence of *course* on *day* without checking the week mask.

    Raises:
        ValidationError: If a time-of-day is missing or malformed, or end < start.
    """
    if not course.has_schedule:
        raise ValidationError(f"Course {course.id} has no class time")
    start = datetime.combine(day, parse_time_of_day(course.class_start_time), tzinfo=tz)
    end = datetime.combine(day, parse_time_of_day(course.class_end_time), tzinfo=tz)
    if end < start:
        raise ValidationError(
            f"Class end {course.class_end_time!r} is before start {course.class_start_time!r}"
        )
    return ProjectedOccurrence(
        id=synthetic_id(course.id, day),
        title=course.title,
        start=start,
        end=end,
        course_id=course.id,
    )


def project(
    course: Course,
    range_start: date | datetime,
    range_end: date | datetime,
    tz: tzinfo | None = None,
) -> Iterator[ProjectedOccurrence]:
    """Yield the occurrences of *course* between two dates, both inclusive.

    Datetimes are truncated to their date; no timezone conversion is done, the
    caller supplies dates already in the target calendar. A course without class
    times yields nothing. A day whose times cannot be built is logged and
    skipped, the rest of the range is still projected.

    Args:
        course: Course with week mask and times-of-day.
        range_start: First calendar day to consider.
        range_end: Last calendar day to consider.
        tz: Timezone the times-of-day are evaluated in (default: configured timezone).
    """
    if not course.has_schedule:
        return
    tz = tz or _default_tz()

    for day in iter_days(as_date(range_start), as_date(range_end)):
        if not course.week_mask.meets(weekday_index(day)):
            continue
        try:
            yield build_occurrence(course, day, tz)
        except ValidationError as e:
            log.warning(
                "occurrence_skipped",
                course_id=course.id,
                day=day.isoformat(),
                error=str(e),
            )


def project_day(
    course: Course, day: date | datetime, tz: tzinfo | None = None
) -> list[ProjectedOccurrence]:
    """Occurrences of *course* on a single day (zero or one)."""
    return list(project(course, day, day, tz))
