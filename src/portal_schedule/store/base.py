"""Persistence port consumed by the scheduling core.

Implementations map their native rows into the models in portal_schedule.models
and raise the errors in portal_schedule.errors:

- ConflictError from insert_enrollment on a duplicate (student, course) pair
- StoreError subclasses for everything the backend itself fails on
"""

from abc import ABC, abstractmethod

from portal_schedule.models import (
    Course,
    EventFields,
    EventFilter,
    NewEvent,
    PersistedEvent,
)


class ScheduleStore(ABC):
    """Courses, enrollments and persisted events of the portal."""

    # Catalog

    @abstractmethod
    def get_course(self, course_id: str) -> Course | None:
        """Return the course, or None if no such course exists."""

    @abstractmethod
    def list_courses(self) -> list[Course]:
        """Return the whole catalog ordered by course code."""

    # Enrollments

    @abstractmethod
    def get_enrolled_courses(self, user_id: str) -> list[Course]:
        """Return the courses the user is enrolled in."""

    @abstractmethod
    def insert_enrollment(self, user_id: str, course_id: str) -> None:
        """Enroll the user.

        Raises:
            ConflictError: If the user is already enrolled in the course.
        """

    @abstractmethod
    def delete_enrollment(self, user_id: str, course_id: str) -> None:
        """Remove the enrollment row (no-op if absent)."""

    # Events, bulk

    @abstractmethod
    def insert_events(self, rows: list[NewEvent]) -> list[PersistedEvent]:
        """Insert all rows in one batch and return them with their ids."""

    @abstractmethod
    def delete_events(self, event_filter: EventFilter) -> int:
        """Delete every row matching the filter; return how many were removed."""

    @abstractmethod
    def query_events(self, event_filter: EventFilter) -> list[PersistedEvent]:
        """Return every row matching the filter, ordered by start."""

    # Events, single freeform row

    @abstractmethod
    def insert_event(self, row: NewEvent) -> PersistedEvent:
        """Insert one row and return it with its id."""

    @abstractmethod
    def update_event(
        self, event_id: str, owner_id: str, fields: EventFields
    ) -> PersistedEvent | None:
        """Update a freeform row owned by *owner_id*.

        Returns None (and changes nothing) when no freeform row with that id
        belongs to the owner.
        """

    @abstractmethod
    def delete_event(self, event_id: str, owner_id: str) -> bool:
        """Delete a freeform row owned by *owner_id*; False if nothing matched."""
