"""Materialization reconciler - keeps stored course events in step with enrollments.

On enroll, the course's occurrences for the current and the next calendar week
are projected and bulk-inserted as persisted events referencing the course.
On unenroll, the user's rows for that course starting within the same two-week
window are deleted. Rows outside the window are never touched.

Both operations are best-effort: a store failure is logged and reported in the
returned MaterializationResult, never raised, because the enrollment row is the
source of truth and the query layer re-derives course meetings on every read.
"""

from collections.abc import Callable
from datetime import date, datetime, timedelta, tzinfo

from portal_schedule.config import get_config
from portal_schedule.errors import StoreError, ValidationError
from portal_schedule.logging import get_logger
from portal_schedule.models import Course, EventFilter, MaterializationResult, NewEvent
from portal_schedule.projector import project
from portal_schedule.store.base import ScheduleStore
from portal_schedule.timeutils import (
    MATERIALIZATION_DAYS,
    materialization_window,
    parse_time_of_day,
    resolve_timezone,
    start_of_week,
    synthetic_id,
)

log = get_logger(__name__)


class MaterializationReconciler:
    """Inserts and deletes materialized course events on enrollment changes."""

    def __init__(
        self,
        store: ScheduleStore,
        *,
        tz: tzinfo | None = None,
        today: Callable[[], date] | None = None,
    ) -> None:
        """Initialize the reconciler.

        Args:
            store: Persistence port.
            tz: Calendar timezone (default: configured timezone).
            today: Clock returning the current calendar date in *tz*.
        """
        self.store = store
        self.tz = tz or resolve_timezone(get_config().timezone)
        self._today = today or (lambda: datetime.now(self.tz).date())

    def window(self) -> tuple[datetime, datetime]:
        """Half-open [start of this week, end of next week) instants."""
        return materialization_window(self._today(), self.tz)

    def on_enroll(self, user_id: str, course: Course) -> MaterializationResult:
        """Materialize the course's occurrences in the window for *user_id*.

        Days already materialized for this user and course are skipped, so
        running it twice does not duplicate rows.
        """
        if not course.has_schedule:
            log.warning(
                "materialization_skipped",
                user_id=user_id,
                course_id=course.id,
                reason="missing_schedule",
            )
            return MaterializationResult(scheduled=False, reason="missing_schedule")
        try:
            parse_time_of_day(course.class_start_time)
            parse_time_of_day(course.class_end_time)
        except ValidationError as e:
            log.warning(
                "materialization_skipped",
                user_id=user_id,
                course_id=course.id,
                reason="invalid_schedule",
                error=str(e),
            )
            return MaterializationResult(scheduled=False, reason="invalid_schedule", error=str(e))

        # The window and the projected days derive from the same date
        today = self._today()
        window_start, window_end = materialization_window(today, self.tz)
        first_day = start_of_week(today)
        last_day = first_day + timedelta(days=MATERIALIZATION_DAYS - 1)
        occurrences = list(project(course, first_day, last_day, self.tz))

        try:
            existing = self.store.query_events(
                EventFilter(
                    user_id=user_id,
                    course_id=course.id,
                    starts_from=window_start,
                    starts_before=window_end,
                )
            )
            materialized = {
                synthetic_id(course.id, e.start.astimezone(self.tz).date()) for e in existing
            }
            rows = [
                NewEvent(
                    user_id=user_id,
                    course_id=course.id,
                    title=occ.title,
                    start=occ.start,
                    end=occ.end,
                )
                for occ in occurrences
                if occ.id not in materialized
            ]
            created = self.store.insert_events(rows)
        except StoreError as e:
            log.error(
                "materialization_failed",
                user_id=user_id,
                course_id=course.id,
                error=str(e),
                type=type(e).__name__,
            )
            return MaterializationResult(scheduled=False, reason="insert_failed", error=str(e))

        skipped = len(occurrences) - len(rows)
        log.info(
            "events_materialized",
            user_id=user_id,
            course_id=course.id,
            inserted=len(created),
            skipped_existing=skipped,
            window_start=window_start.isoformat(),
            window_end=window_end.isoformat(),
        )
        return MaterializationResult(scheduled=True, inserted=len(created), skipped_existing=skipped)

    def on_unenroll(self, user_id: str, course_id: str) -> MaterializationResult:
        """Delete the user's materialized rows for the course inside the window."""
        window_start, window_end = self.window()
        try:
            deleted = self.store.delete_events(
                EventFilter(
                    user_id=user_id,
                    course_id=course_id,
                    starts_from=window_start,
                    starts_before=window_end,
                )
            )
        except StoreError as e:
            log.warning(
                "unenroll_cleanup_failed",
                user_id=user_id,
                course_id=course_id,
                error=str(e),
                type=type(e).__name__,
            )
            return MaterializationResult(scheduled=False, reason="delete_failed", error=str(e))

        log.info("events_dematerialized", user_id=user_id, course_id=course_id, deleted=deleted)
        return MaterializationResult(scheduled=True, deleted=deleted)
