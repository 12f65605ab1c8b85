"""ScheduleStore backed by the portal's hosted database over its PostgREST API.

Tables (as created by the portal's migrations):
  courses          id, course_code, course_name, instructor,
                   class_start_time, class_end_time, meets_sunday .. meets_saturday
  student_courses  student_id, course_id   (unique pair)
  events           id, user_id, course_id (null = freeform), title,
                   start_time, end_time

Filters use PostgREST operators in the query string, e.g.
  GET /rest/v1/events?user_id=eq.<uid>&course_id=is.null&start_time=gte.<iso>

HTTP failures are classified into the errors in portal_schedule.errors so
reads and idempotent deletes can be retried on TransientError only.
"""

from typing import Any

import requests
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from portal_schedule.config import ScheduleConfig, get_config
from portal_schedule.errors import (
    AuthenticationError,
    ConflictError,
    PermanentError,
    RateLimitError,
    TransientError,
)
from portal_schedule.logging import get_logger
from portal_schedule.models import (
    WEEKDAY_COLUMNS,
    Course,
    EventFields,
    EventFilter,
    NewEvent,
    PersistedEvent,
    WeekMask,
)
from portal_schedule.store.base import ScheduleStore

log = get_logger(__name__)

COURSE_COLUMNS = ",".join(
    (
        "id",
        "course_code",
        "course_name",
        "instructor",
        "class_start_time",
        "class_end_time",
        *WEEKDAY_COLUMNS,
    )
)
EVENT_COLUMNS = "id,user_id,course_id,title,start_time,end_time"

# Postgres unique_violation
UNIQUE_VIOLATION = "23505"


# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------
def course_from_row(row: dict[str, Any]) -> Course:
    """Map a courses row to a Course."""
    return Course(
        id=row["id"],
        title=row.get("course_name") or "",
        class_start_time=row.get("class_start_time"),
        class_end_time=row.get("class_end_time"),
        week_mask=WeekMask.from_columns(row),
        code=row.get("course_code"),
        instructor=row.get("instructor"),
    )


def joined_course(value: Any) -> dict[str, Any] | None:
    """Normalise an embedded course:courses(...) join to a single row or None.

    PostgREST returns a to-one embed as an object, but a missing foreign key
    hint makes it come back as a list; both shapes (and null) are accepted.
    """
    if isinstance(value, list):
        return value[0] if value else None
    if isinstance(value, dict):
        return value
    return None


def event_from_row(row: dict[str, Any]) -> PersistedEvent:
    """Map an events row to a PersistedEvent."""
    return PersistedEvent(
        id=row["id"],
        user_id=row["user_id"],
        course_id=row.get("course_id"),
        title=row["title"],
        start=row["start_time"],
        end=row["end_time"],
    )


def event_to_row(event: NewEvent) -> dict[str, Any]:
    """Map a NewEvent to an events row payload."""
    return {
        "user_id": event.user_id,
        "course_id": event.course_id,
        "title": event.title,
        "start_time": event.start.isoformat(),
        "end_time": event.end.isoformat(),
    }


def filter_params(event_filter: EventFilter) -> list[tuple[str, str]]:
    """Translate an EventFilter into PostgREST query parameters."""
    params = [("user_id", f"eq.{event_filter.user_id}")]
    if event_filter.freeform_only:
        params.append(("course_id", "is.null"))
    if event_filter.course_id is not None:
        params.append(("course_id", f"eq.{event_filter.course_id}"))
    if event_filter.starts_from is not None:
        params.append(("start_time", f"gte.{event_filter.starts_from.isoformat()}"))
    if event_filter.starts_before is not None:
        params.append(("start_time", f"lt.{event_filter.starts_before.isoformat()}"))
    if event_filter.ends_after is not None:
        params.append(("end_time", f"gte.{event_filter.ends_after.isoformat()}"))
    return params


def raise_for_response(resp: requests.Response) -> None:
    """Raise the matching store error for a failed PostgREST response."""
    if resp.status_code < 400:
        return

    try:
        body = resp.json()
    except ValueError:
        body = None
    code = body.get("code") if isinstance(body, dict) else None
    message = (body.get("message") if isinstance(body, dict) else None) or resp.text[:200]
    detail = f"{resp.status_code} {message}"

    if resp.status_code == 409 or code == UNIQUE_VIOLATION:
        raise ConflictError(detail)
    if resp.status_code == 429:
        raise RateLimitError(detail)
    if resp.status_code in (401, 403):
        raise AuthenticationError(detail)
    if resp.status_code >= 500:
        raise TransientError(detail)
    raise PermanentError(detail)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------
class RestStore(ScheduleStore):
    """PostgREST client for the portal database.

    One instance per request handler is fine; the underlying requests.Session
    only pools connections.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 10.0,
        max_attempts: int = 3,
        retry_wait: float = 0.5,
        session: requests.Session | None = None,
    ) -> None:
        self.rest_url = f"{base_url.rstrip('/')}/rest/v1"
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.retry_wait = retry_wait
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }
        )

    @classmethod
    def from_config(cls, config: ScheduleConfig | None = None) -> "RestStore":
        config = config or get_config()
        return cls(
            config.store_url,
            config.store_api_key,
            timeout=config.store_timeout_seconds,
            max_attempts=config.store_max_attempts,
        )

    # -- transport ---------------------------------------------------------

    def _send(
        self,
        method: str,
        table: str,
        *,
        params: list[tuple[str, str]] | None = None,
        payload: Any = None,
        prefer: str | None = None,
    ) -> Any:
        headers = {"Prefer": prefer} if prefer else None
        url = f"{self.rest_url}/{table}"
        try:
            resp = self.session.request(
                method,
                url,
                params=params,
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except (requests.Timeout, requests.ConnectionError) as e:
            log.warning("store_request_failed", method=method, table=table, error=str(e))
            raise TransientError(f"{method} {table} failed: {e}") from e

        if resp.status_code >= 400:
            log.debug("store_error_response", method=method, table=table, status=resp.status_code)
        raise_for_response(resp)

        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    def _request(self, method: str, table: str, *, retryable: bool = False, **kwargs: Any) -> Any:
        """Send one request; retry on TransientError when the call is idempotent."""
        if not retryable:
            return self._send(method, table, **kwargs)
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.retry_wait, max=5),
            retry=retry_if_exception_type(TransientError),
            reraise=True,
        )
        return retrying(self._send, method, table, **kwargs)

    # -- catalog -----------------------------------------------------------

    def get_course(self, course_id: str) -> Course | None:
        rows = self._request(
            "GET",
            "courses",
            params=[("select", COURSE_COLUMNS), ("id", f"eq.{course_id}")],
            retryable=True,
        )
        return course_from_row(rows[0]) if rows else None

    def list_courses(self) -> list[Course]:
        rows = self._request(
            "GET",
            "courses",
            params=[("select", COURSE_COLUMNS), ("order", "course_code.asc")],
            retryable=True,
        )
        return [course_from_row(row) for row in rows or []]

    # -- enrollments -------------------------------------------------------

    def get_enrolled_courses(self, user_id: str) -> list[Course]:
        rows = self._request(
            "GET",
            "student_courses",
            params=[
                ("select", f"course:courses({COURSE_COLUMNS})"),
                ("student_id", f"eq.{user_id}"),
            ],
            retryable=True,
        )
        courses = []
        for row in rows or []:
            course = joined_course(row.get("course"))
            if course is not None:
                courses.append(course_from_row(course))
        return courses

    def insert_enrollment(self, user_id: str, course_id: str) -> None:
        self._request(
            "POST",
            "student_courses",
            payload={"student_id": user_id, "course_id": course_id},
            prefer="return=minimal",
        )

    def delete_enrollment(self, user_id: str, course_id: str) -> None:
        self._request(
            "DELETE",
            "student_courses",
            params=[("student_id", f"eq.{user_id}"), ("course_id", f"eq.{course_id}")],
            retryable=True,
        )

    # -- events, bulk ------------------------------------------------------

    def insert_events(self, rows: list[NewEvent]) -> list[PersistedEvent]:
        if not rows:
            return []
        created = self._request(
            "POST",
            "events",
            params=[("select", EVENT_COLUMNS)],
            payload=[event_to_row(row) for row in rows],
            prefer="return=representation",
        )
        return [event_from_row(row) for row in created or []]

    def delete_events(self, event_filter: EventFilter) -> int:
        deleted = self._request(
            "DELETE",
            "events",
            params=[("select", "id"), *filter_params(event_filter)],
            prefer="return=representation",
            retryable=True,
        )
        return len(deleted or [])

    def query_events(self, event_filter: EventFilter) -> list[PersistedEvent]:
        rows = self._request(
            "GET",
            "events",
            params=[
                ("select", EVENT_COLUMNS),
                *filter_params(event_filter),
                ("order", "start_time.asc,id.asc"),
            ],
            retryable=True,
        )
        return [event_from_row(row) for row in rows or []]

    # -- events, single freeform row ----------------------------------------

    def _owned_freeform(self, event_id: str, owner_id: str) -> list[tuple[str, str]]:
        return [
            ("select", EVENT_COLUMNS),
            ("id", f"eq.{event_id}"),
            ("user_id", f"eq.{owner_id}"),
            ("course_id", "is.null"),
        ]

    def insert_event(self, row: NewEvent) -> PersistedEvent:
        created = self._request(
            "POST",
            "events",
            params=[("select", EVENT_COLUMNS)],
            payload=event_to_row(row),
            prefer="return=representation",
        )
        return event_from_row(created[0])

    def update_event(
        self, event_id: str, owner_id: str, fields: EventFields
    ) -> PersistedEvent | None:
        updated = self._request(
            "PATCH",
            "events",
            params=self._owned_freeform(event_id, owner_id),
            payload={
                "title": fields.title,
                "start_time": fields.start.isoformat(),
                "end_time": fields.end.isoformat(),
            },
            prefer="return=representation",
            retryable=True,
        )
        return event_from_row(updated[0]) if updated else None

    def delete_event(self, event_id: str, owner_id: str) -> bool:
        deleted = self._request(
            "DELETE",
            "events",
            params=self._owned_freeform(event_id, owner_id),
            prefer="return=representation",
            retryable=True,
        )
        return bool(deleted)
