"""Pydantic models for courses, enrollments and calendar events.

All data structures use Pydantic v2 for validation, serialization, and type safety.
Store adapters map raw rows into these models at the boundary, so the rest of
the core never deals with join shapes or column names.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from portal_schedule.errors import DependentOperationFailure

# Column names of the catalog's meeting-day flags, in Sunday=0 order
WEEKDAY_COLUMNS: tuple[str, ...] = (
    "meets_sunday",
    "meets_monday",
    "meets_tuesday",
    "meets_wednesday",
    "meets_thursday",
    "meets_friday",
    "meets_saturday",
)


class WeekMask(BaseModel):
    """Which weekdays a course meets on, indexed Sunday=0 .. Saturday=6."""

    model_config = ConfigDict(frozen=True)

    days: tuple[bool, bool, bool, bool, bool, bool, bool] = (False,) * 7

    @classmethod
    def from_columns(cls, row: dict) -> "WeekMask":
        """Build from a catalog row's meets_* flags (missing/null means False)."""
        return cls(days=tuple(bool(row.get(col)) for col in WEEKDAY_COLUMNS))

    @classmethod
    def of(cls, *weekdays: int) -> "WeekMask":
        """Build from weekday indexes, e.g. WeekMask.of(1, 3, 5) for Mon/Wed/Fri."""
        return cls(days=tuple(i in weekdays for i in range(7)))

    def meets(self, weekday: int) -> bool:
        return self.days[weekday]

    def to_columns(self) -> dict[str, bool]:
        return dict(zip(WEEKDAY_COLUMNS, self.days))


class Course(BaseModel):
    """A catalog course with its weekly meeting pattern.

    Times are kept as the store's raw text ("09:00:00") and parsed per projected
    day, so one malformed value cannot fail a whole course listing.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    class_start_time: str | None = None  # "HH:MM[:SS]" time-of-day, no date
    class_end_time: str | None = None
    week_mask: WeekMask = Field(default_factory=WeekMask)
    code: str | None = None  # e.g. "CS101", catalog ordering key
    instructor: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: object) -> str:
        return str(value)

    @property
    def has_schedule(self) -> bool:
        """True when both times-of-day are present (the course can be projected)."""
        return bool(self.class_start_time) and bool(self.class_end_time)


class _EventTimes(BaseModel):
    """Shared start/end fields with the end >= start invariant."""

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def _check_order(self):
        if self.end < self.start:
            raise ValueError("end must not be before start")
        return self


class NewEvent(_EventTimes):
    """A persisted-event row before the store assigns its id."""

    user_id: str
    course_id: str | None = None  # None for freeform user events
    title: str


class PersistedEvent(NewEvent):
    """A row of the persisted event store."""

    id: str

    @field_validator("id", "course_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value: object) -> object:
        return None if value is None else str(value)

    @property
    def is_course_event(self) -> bool:
        return self.course_id is not None


class EventFields(_EventTimes):
    """Mutable fields of a freeform event."""

    title: str


class EventFilter(BaseModel):
    """Row selection for bulk event queries and deletes.

    starts_from is inclusive, starts_before exclusive, ends_after inclusive.
    """

    user_id: str
    course_id: str | None = None
    freeform_only: bool = False
    starts_from: datetime | None = None
    starts_before: datetime | None = None
    ends_after: datetime | None = None

    def matches(self, event: PersistedEvent) -> bool:
        if event.user_id != self.user_id:
            return False
        if self.freeform_only and event.course_id is not None:
            return False
        if self.course_id is not None and event.course_id != self.course_id:
            return False
        if self.starts_from is not None and event.start < self.starts_from:
            return False
        if self.starts_before is not None and event.start >= self.starts_before:
            return False
        if self.ends_after is not None and event.end < self.ends_after:
            return False
        return True


class ProjectedOccurrence(BaseModel):
    """One course meeting derived from the weekly pattern. Never persisted."""

    model_config = ConfigDict(frozen=True)

    id: str  # "course-{course_id}-{YYYY-MM-DD}"
    title: str
    start: datetime
    end: datetime
    course_id: str


class MergedEvent(BaseModel):
    """Common shape returned by schedule queries."""

    id: str
    title: str
    start: datetime
    end: datetime
    is_course_event: bool
    course_id: str | None = None

    @classmethod
    def from_persisted(cls, event: PersistedEvent) -> "MergedEvent":
        return cls(
            id=event.id,
            title=event.title,
            start=event.start,
            end=event.end,
            is_course_event=event.is_course_event,
            course_id=event.course_id,
        )

    @classmethod
    def from_occurrence(cls, occurrence: ProjectedOccurrence) -> "MergedEvent":
        return cls(
            id=occurrence.id,
            title=occurrence.title,
            start=occurrence.start,
            end=occurrence.end,
            is_course_event=True,
            course_id=occurrence.course_id,
        )


class MaterializationResult(BaseModel):
    """What the reconciler did for one enrollment change."""

    scheduled: bool
    inserted: int = 0
    deleted: int = 0
    skipped_existing: int = 0
    reason: str | None = None  # "missing_schedule", "insert_failed", "delete_failed"
    error: str | None = None


class EnrollmentOutcome(BaseModel):
    """Enrollment and schedule materialization are reported independently."""

    user_id: str
    course_id: str
    enrolled: bool
    schedule_updated: bool
    materialization: MaterializationResult
    message: str

    def raise_for_schedule(self) -> None:
        """Raise DependentOperationFailure if the schedule was not fully updated."""
        if not self.schedule_updated:
            raise DependentOperationFailure(self.message, reason=self.materialization.reason)


class UnenrollmentOutcome(BaseModel):
    user_id: str
    course_id: str
    unenrolled: bool
    schedule_updated: bool
    materialization: MaterializationResult
    message: str

    def raise_for_schedule(self) -> None:
        if not self.schedule_updated:
            raise DependentOperationFailure(self.message, reason=self.materialization.reason)


class CourseCatalog(BaseModel):
    """The course list split by the student's enrollment state."""

    enrolled: list[Course]
    available: list[Course]
