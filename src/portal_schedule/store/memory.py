"""In-memory ScheduleStore for tests and local development.

Mirrors the constraints of the hosted database: unique enrollments and
owner-scoped, freeform-only single-row mutations.
"""

from itertools import count

from portal_schedule.errors import ConflictError
from portal_schedule.models import (
    Course,
    EventFields,
    EventFilter,
    NewEvent,
    PersistedEvent,
)
from portal_schedule.store.base import ScheduleStore


class InMemoryStore(ScheduleStore):
    """Dict-backed store. Not thread-safe."""

    def __init__(self, courses: list[Course] | None = None) -> None:
        self.courses: dict[str, Course] = {c.id: c for c in courses or []}
        self.enrollments: set[tuple[str, str]] = set()
        self.events: dict[str, PersistedEvent] = {}
        self._ids = count(1)

    def add_course(self, course: Course) -> None:
        self.courses[course.id] = course

    def _store(self, row: NewEvent) -> PersistedEvent:
        event = PersistedEvent(id=str(next(self._ids)), **row.model_dump())
        self.events[event.id] = event
        return event

    def _owned_freeform(self, event_id: str, owner_id: str) -> PersistedEvent | None:
        event = self.events.get(str(event_id))
        if event is None or event.user_id != owner_id or event.course_id is not None:
            return None
        return event

    def get_course(self, course_id: str) -> Course | None:
        return self.courses.get(str(course_id))

    def list_courses(self) -> list[Course]:
        return sorted(self.courses.values(), key=lambda c: (c.code or "", c.id))

    def get_enrolled_courses(self, user_id: str) -> list[Course]:
        return [
            self.courses[course_id]
            for uid, course_id in sorted(self.enrollments)
            if uid == user_id and course_id in self.courses
        ]

    def insert_enrollment(self, user_id: str, course_id: str) -> None:
        key = (user_id, str(course_id))
        if key in self.enrollments:
            raise ConflictError(f"User {user_id} is already enrolled in course {course_id}")
        self.enrollments.add(key)

    def delete_enrollment(self, user_id: str, course_id: str) -> None:
        self.enrollments.discard((user_id, str(course_id)))

    def insert_events(self, rows: list[NewEvent]) -> list[PersistedEvent]:
        return [self._store(row) for row in rows]

    def delete_events(self, event_filter: EventFilter) -> int:
        doomed = [e.id for e in self.events.values() if event_filter.matches(e)]
        for event_id in doomed:
            del self.events[event_id]
        return len(doomed)

    def query_events(self, event_filter: EventFilter) -> list[PersistedEvent]:
        found = [e for e in self.events.values() if event_filter.matches(e)]
        return sorted(found, key=lambda e: (e.start, e.id))

    def insert_event(self, row: NewEvent) -> PersistedEvent:
        return self._store(row)

    def update_event(
        self, event_id: str, owner_id: str, fields: EventFields
    ) -> PersistedEvent | None:
        event = self._owned_freeform(event_id, owner_id)
        if event is None:
            return None
        updated = event.model_copy(update=fields.model_dump())
        self.events[updated.id] = updated
        return updated

    def delete_event(self, event_id: str, owner_id: str) -> bool:
        event = self._owned_freeform(event_id, owner_id)
        if event is None:
            return False
        del self.events[event.id]
        return True
