import logging
import sys

import pytest
import structlog

from portal_schedule.logging import bind_request_context, clear_request_context, setup_logging


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    structlog.reset_defaults()
    root.handlers = handlers
    root.setLevel(level)


def test_setup_logging_writes_to_stderr(restore_logging):
    setup_logging(json_output=True, log_level="debug")

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert [h.stream for h in root.handlers] == [sys.stderr]
    assert isinstance(structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer)


def test_unknown_level_falls_back_to_info(restore_logging):
    setup_logging(log_level="chatty")

    assert logging.getLogger().level == logging.INFO


def test_request_context_binding():
    bind_request_context(user_id="student-a", command="day")
    try:
        assert structlog.contextvars.get_contextvars() == {"user_id": "student-a", "command": "day"}
    finally:
        clear_request_context()

    assert structlog.contextvars.get_contextvars() == {}
