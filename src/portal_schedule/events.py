"""Event CRUD gateway - validated, owner-scoped mutations of freeform events.

Materialized course events are never editable here; they only change through
the reconciler. Every mutation is keyed on (event id, owner), so an id that is
absent, belongs to another user, or refers to a course event is a miss.
"""

from datetime import datetime, tzinfo

import pydantic
from pydantic import BaseModel, field_validator, model_validator

from portal_schedule.config import get_config
from portal_schedule.errors import NotFoundError, ValidationError
from portal_schedule.logging import get_logger
from portal_schedule.models import EventFields, NewEvent, PersistedEvent
from portal_schedule.store.base import ScheduleStore
from portal_schedule.timeutils import resolve_timezone

log = get_logger(__name__)


class EventInput(BaseModel):
    """Form input for creating or updating a freeform event."""

    title: str
    start: datetime
    end: datetime

    @field_validator("title")
    @classmethod
    def _title_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Title is required")
        return value

    @model_validator(mode="after")
    def _end_not_before_start(self):
        start, end = self.start, self.end
        # Only comparable when both are naive or both are aware
        if (start.tzinfo is None) == (end.tzinfo is None) and end < start:
            raise ValueError("End time must not be before start time")
        return self


def _error_summary(exc: pydantic.ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}"
        for err in exc.errors()
    )


def _require_event_id(event_id: object) -> str:
    value = "" if event_id is None else str(event_id).strip()
    if not value:
        raise ValidationError("Event ID is required")
    return value


class EventGateway:
    """Create, update and delete a user's freeform events."""

    def __init__(self, store: ScheduleStore, *, tz: tzinfo | None = None) -> None:
        self.store = store
        self.tz = tz or resolve_timezone(get_config().timezone)

    def _validate(self, title: object, start: object, end: object) -> EventFields:
        """Validate form values into EventFields with aware datetimes.

        Raises:
            ValidationError: Blank title, unparseable datetimes or end < start.
        """
        try:
            data = EventInput(title=title, start=start, end=end)
            return EventFields(
                title=data.title,
                start=self._aware(data.start),
                end=self._aware(data.end),
            )
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid event: {_error_summary(e)}") from e

    def _aware(self, value: datetime) -> datetime:
        # Naive form values are wall-clock times in the calendar timezone
        return value if value.tzinfo is not None else value.replace(tzinfo=self.tz)

    def create(self, user_id: str, title: object, start: object, end: object) -> PersistedEvent:
        """Insert a new freeform event owned by *user_id*."""
        fields = self._validate(title, start, end)
        event = self.store.insert_event(NewEvent(user_id=user_id, **fields.model_dump()))
        log.info("event_created", user_id=user_id, event_id=event.id)
        return event

    def update(
        self, user_id: str, event_id: object, title: object, start: object, end: object
    ) -> PersistedEvent:
        """Replace title, start and end of one of the user's freeform events.

        Raises:
            ValidationError: If the id or fields are invalid.
            NotFoundError: If no freeform event with that id belongs to the user.
        """
        event_id = _require_event_id(event_id)
        fields = self._validate(title, start, end)
        event = self.store.update_event(event_id, user_id, fields)
        if event is None:
            log.warning("event_update_rejected", user_id=user_id, event_id=event_id)
            raise NotFoundError(f"Event {event_id} not found")
        log.info("event_updated", user_id=user_id, event_id=event_id)
        return event

    def delete(self, user_id: str, event_id: object) -> None:
        """Delete one of the user's freeform events.

        Raises:
            ValidationError: If the id is blank.
            NotFoundError: If no freeform event with that id belongs to the user.
        """
        event_id = _require_event_id(event_id)
        if not self.store.delete_event(event_id, user_id):
            log.warning("event_delete_rejected", user_id=user_id, event_id=event_id)
            raise NotFoundError(f"Event {event_id} not found")
        log.info("event_deleted", user_id=user_id, event_id=event_id)
