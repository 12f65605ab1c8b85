"""Calendar helpers shared by the projector, reconciler and query layer.

Weekday indexes follow the course catalog convention: Sunday=0 .. Saturday=6
(Python's date.weekday() is Monday=0, so everything goes through weekday_index()).
Calendar weeks start on Sunday.
"""

from collections.abc import Iterator
from datetime import date, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from portal_schedule.errors import ValidationError

DAYS_PER_WEEK = 7

# Two calendar weeks: the current one and the next one
MATERIALIZATION_DAYS = 2 * DAYS_PER_WEEK


def resolve_timezone(name: str) -> tzinfo:
    """Return the ZoneInfo for an IANA name.

    Raises:
        ValidationError: If the name is not a known timezone.
    """
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValidationError(f"Unknown timezone {name!r}") from e


def parse_time_of_day(value: str) -> time:
    """Parse 'HH:MM' or 'HH:MM:SS' into a time.

    Raises:
        ValidationError: For any other format or out-of-range component.
    """
    parts = str(value).strip().split(":")
    if len(parts) not in (2, 3):
        raise ValidationError(f"Invalid time format: {value!r}")
    try:
        hour = int(parts[0])
        minute = int(parts[1])
        # Postgres 'time' columns may carry fractional seconds ("09:00:00.5")
        second = int(float(parts[2])) if len(parts) == 3 else 0
    except ValueError as e:
        raise ValidationError(f"Invalid time format: {value!r}") from e
    if not (0 <= hour <= 23 and 0 <= minute <= 59 and 0 <= second <= 59):
        raise ValidationError(f"Invalid time value: {value!r}")
    return time(hour, minute, second)


def as_date(value: date | datetime) -> date:
    """Normalise a date or datetime to its calendar date (i.e. midnight)."""
    if isinstance(value, datetime):
        return value.date()
    return value


def weekday_index(day: date) -> int:
    """Sunday=0 .. Saturday=6."""
    return (day.weekday() + 1) % DAYS_PER_WEEK


def start_of_week(day: date) -> date:
    """Return the Sunday that starts the calendar week containing *day*."""
    return day - timedelta(days=weekday_index(day))


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar date from *start* to *end*, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def start_of_day(day: date, tz: tzinfo) -> datetime:
    """Midnight of *day* in *tz* as an aware datetime."""
    return datetime.combine(day, time.min, tzinfo=tz)


def day_bounds(day: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """Half-open [midnight, next midnight) instants for *day*."""
    return start_of_day(day, tz), start_of_day(day + timedelta(days=1), tz)


def materialization_window(today: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """Half-open instants from the start of this week to the end of next week.

    Sunday 00:00 of the current week up to (excluding) Sunday 00:00 two weeks later.
    """
    first = start_of_week(today)
    return start_of_day(first, tz), start_of_day(first + timedelta(days=MATERIALIZATION_DAYS), tz)


def synthetic_id(course_id: str, day: date) -> str:
    """Stable identifier of one course occurrence: course-{id}-{YYYY-MM-DD}."""
    return f"course-{course_id}-{day.isoformat()}"
