"""Event merge & query layer - the user's schedule for a date range or a day.

Course meetings are always re-derived by live projection, whatever has been
materialized, so any range can be answered. Materialized course rows are
therefore excluded from the stored-event fetch and only freeform events are
read from the store.
"""

from collections.abc import Callable, Iterable
from datetime import date, datetime, timedelta, tzinfo

from portal_schedule.config import get_config
from portal_schedule.errors import StoreError
from portal_schedule.logging import get_logger
from portal_schedule.models import Course, EventFilter, MergedEvent
from portal_schedule.projector import project
from portal_schedule.store.base import ScheduleStore
from portal_schedule.timeutils import as_date, day_bounds, resolve_timezone, start_of_day

log = get_logger(__name__)


def merge_events(*streams: Iterable[MergedEvent]) -> list[MergedEvent]:
    """Concatenate, drop repeated ids (first one wins), sort by (start, id)."""
    seen: set[str] = set()
    merged = []
    for stream in streams:
        for event in stream:
            if event.id in seen:
                continue
            seen.add(event.id)
            merged.append(event)
    merged.sort(key=lambda e: (e.start, e.id))
    return merged


class ScheduleQuery:
    """Read side of the schedule: freeform events merged with course meetings."""

    def __init__(
        self,
        store: ScheduleStore,
        *,
        tz: tzinfo | None = None,
        today: Callable[[], date] | None = None,
        window_days: int | None = None,
    ) -> None:
        config = get_config()
        self.store = store
        self.tz = tz or resolve_timezone(config.timezone)
        self._today = today or (lambda: datetime.now(self.tz).date())
        self.window_days = config.query_window_days if window_days is None else window_days

    def today(self) -> date:
        """Current calendar date in the query timezone."""
        return self._today()

    def _enrolled_courses(self, user_id: str) -> list[Course] | None:
        """Enrolled courses, or None when the store could not provide them."""
        try:
            return self.store.get_enrolled_courses(user_id)
        except StoreError as e:
            log.error("enrolled_courses_fetch_failed", user_id=user_id, error=str(e))
            return None

    def _course_events(
        self, courses: list[Course], first_day: date, last_day: date
    ) -> list[MergedEvent]:
        events = []
        for course in courses:
            if not course.has_schedule:
                continue
            events.extend(
                MergedEvent.from_occurrence(occ)
                for occ in project(course, first_day, last_day, self.tz)
            )
        return events

    def _merge(
        self, user_id: str, event_filter: EventFilter, first_day: date, last_day: date
    ) -> list[MergedEvent]:
        freeform = [MergedEvent.from_persisted(e) for e in self.store.query_events(event_filter)]

        courses = self._enrolled_courses(user_id)
        if courses is None:
            # Partial availability: freeform events only
            return merge_events(freeform)

        return merge_events(freeform, self._course_events(courses, first_day, last_day))

    def get_events(
        self, user_id: str, range_start: date | datetime, range_end: date | datetime
    ) -> list[MergedEvent]:
        """Events overlapping the days from *range_start* to *range_end* inclusive.

        Freeform events are included when they intersect the range; course
        meetings are projected for every day in it.
        """
        first_day, last_day = as_date(range_start), as_date(range_end)
        event_filter = EventFilter(
            user_id=user_id,
            freeform_only=True,
            ends_after=start_of_day(first_day, self.tz),
            starts_before=start_of_day(last_day + timedelta(days=1), self.tz),
        )
        events = self._merge(user_id, event_filter, first_day, last_day)
        log.debug(
            "schedule_queried",
            user_id=user_id,
            range_start=first_day.isoformat(),
            range_end=last_day.isoformat(),
            count=len(events),
        )
        return events

    def get_events_for_day(self, user_id: str, day: date | datetime) -> list[MergedEvent]:
        """Freeform events starting on *day* plus that day's course meetings."""
        day = as_date(day)
        day_start, day_end = day_bounds(day, self.tz)
        event_filter = EventFilter(
            user_id=user_id,
            freeform_only=True,
            starts_from=day_start,
            starts_before=day_end,
        )
        return self._merge(user_id, event_filter, day, day)

    def get_default_events(self, user_id: str) -> list[MergedEvent]:
        """The calendar view: window_days before and after today."""
        today = self.today()
        span = timedelta(days=self.window_days)
        return self.get_events(user_id, today - span, today + span)
