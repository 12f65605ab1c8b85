"""Error hierarchy for the scheduling core.

Store failures are split into transient (retry) and permanent (do not retry)
so tenacity retry decorators in the store adapters can classify them:

    @retry(retry=retry_if_exception_type(TransientError), stop=stop_after_attempt(3))
    def _get(self, path, params):
        ...

Domain failures (validation, conflicts, ownership) are never retried.
"""


class ScheduleError(Exception):
    """Base exception for all scheduling errors."""

    pass


class ValidationError(ScheduleError):
    """Malformed input.

    Examples: blank course id, empty event title, end before start,
    unparseable time-of-day on a single projected occurrence.
    """

    pass


class ConflictError(ScheduleError):
    """Uniqueness violation - the student is already enrolled in the course."""

    pass


class NotFoundError(ScheduleError):
    """The target row does not exist or is not visible to the caller.

    Ownership misses report the same way: another user's event and a
    read-only course event are both "not found" for the caller.
    """

    pass


class DependentOperationFailure(ScheduleError):
    """The enrollment change succeeded but the schedule was not fully updated.

    Softer than other failures: the enrollment is not rolled back.
    """

    def __init__(self, message: str, *, reason: str | None = None) -> None:
        super().__init__(message)
        self.reason = reason


class StoreError(ScheduleError):
    """Base exception for failures reported by the persistence store."""

    pass


class TransientError(StoreError):
    """Temporary failure that may succeed on retry.

    Examples: network timeouts, connection resets, 503 Service Unavailable.
    """

    pass


class RateLimitError(TransientError):
    """Rate limit exceeded - needs longer backoff.

    Inherits from TransientError so tenacity will retry it.
    """

    pass


class PermanentError(StoreError):
    """Failure that won't succeed on retry.

    Examples: malformed filter, rejected row, schema mismatch.
    """

    pass


class AuthenticationError(PermanentError):
    """Store rejected the API key or bearer token.

    Requires a configuration fix, cannot be fixed by retry.
    """

    pass
