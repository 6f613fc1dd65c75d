import io
import json
import logging

import pytest
import structlog

from tokenlink.logging_config import setup_logging


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


def test_stdlib_records_rendered_as_json(restore_logging):
    stream = io.StringIO()
    setup_logging("INFO", log_format="json", stream=stream)

    logging.getLogger("tokenlink.test").info("Token fallback for ticker 'bonk'")

    record = json.loads(stream.getvalue().strip().splitlines()[-1])
    assert record["event"] == "Token fallback for ticker 'bonk'"
    assert record["level"] == "info"
    assert record["logger"] == "tokenlink.test"
    assert "timestamp" in record


def test_structlog_events_carry_bound_context(restore_logging):
    stream = io.StringIO()
    setup_logging("INFO", log_format="json", stream=stream)
    structlog.contextvars.bind_contextvars(request_id="abc123")

    structlog.stdlib.get_logger("token_identity").info("token_resolution_batch", queries=2)

    record = json.loads(stream.getvalue().strip().splitlines()[-1])
    assert record["event"] == "token_resolution_batch"
    assert record["queries"] == 2
    assert record["request_id"] == "abc123"


def test_level_filters_debug(restore_logging):
    stream = io.StringIO()
    setup_logging("WARNING", log_format="json", stream=stream)

    logging.getLogger("tokenlink.test").info("hidden")

    assert stream.getvalue() == ""
