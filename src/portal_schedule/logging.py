"""structlog setup for the schedule core.

Every module logs through get_logger(__name__) with snake_case event names
and key-value context. setup_logging() is called once by the entry point;
until then structlog's defaults apply, which is what the tests run with.

All output, structlog's and the stdlib loggers' of requests/urllib3, goes to
stderr. The CLI prints its JSON or table result on stdout.
"""

import logging
import sys

import structlog


def _renderer(json_output: bool):
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def setup_logging(json_output: bool = False, log_level: str = "INFO") -> None:
    """Route structlog and stdlib logging to stderr at *log_level*.

    *json_output* selects one JSON object per line (deployed) over the
    colored console renderer (local runs). Unknown level names fall back
    to INFO.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _renderer(json_output),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    root.handlers = [handler]
    root.setLevel(level)


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def bind_request_context(**values: object) -> None:
    """Attach *values* (user_id, command...) to every event logged afterwards
    in the current context, until clear_request_context()."""
    structlog.contextvars.bind_contextvars(**values)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
