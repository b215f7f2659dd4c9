"""Unit tests for logging configuration."""

import io
import json
import logging
import sys

import pytest

from schemadrift.core.logging import StructuredFormatter, configure_logging


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logging.getLogger("schemadrift").handlers.clear()


def test_structured_format_includes_subject_and_version():
    stream = io.StringIO()
    configure_logging(level="INFO", stream=stream)

    logging.getLogger("schemadrift.core.schema.allocator").info(
        "Registered schema version 2 for subject: auth-schema",
        extra={"subject": "auth-schema", "version": 2},
    )

    assert stream.getvalue().strip() == (
        "[INFO] subject=auth-schema version=2 "
        "Registered schema version 2 for subject: auth-schema"
    )


def test_level_filters_messages():
    stream = io.StringIO()
    configure_logging(level="warning", stream=stream)
    logger = logging.getLogger("schemadrift.test")

    logger.info("hidden")
    logger.warning("shown")

    assert "hidden" not in stream.getvalue()
    assert "[WARNING] shown" in stream.getvalue()


def test_default_subject_filter():
    stream = io.StringIO()
    configure_logging(subject="billing-schema", stream=stream)

    logging.getLogger("schemadrift").info("hello")
    logging.getLogger("schemadrift").info("other", extra={"subject": "auth-schema"})

    lines = stream.getvalue().splitlines()
    assert lines[0] == "[INFO] subject=billing-schema hello"
    assert lines[1] == "[INFO] subject=auth-schema other"


def test_json_format():
    stream = io.StringIO()
    configure_logging(json_format=True, stream=stream)

    logging.getLogger("schemadrift").warning(
        "Schema drift detected", extra={"subject": "auth-schema"}
    )

    payload = json.loads(stream.getvalue())
    assert payload["message"] == "Schema drift detected"
    assert payload["subject"] == "auth-schema"


def test_reconfiguring_replaces_handlers():
    configure_logging(stream=io.StringIO())
    configure_logging(stream=io.StringIO())

    assert len(logging.getLogger("schemadrift").handlers) == 1


def test_formatter_context_and_exception():
    formatter = StructuredFormatter()
    try:
        raise ValueError("boom")
    except ValueError:
        record = logging.LogRecord(
            "schemadrift", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
        )
    record.context = {"stage": "register"}

    text = formatter.format(record)

    assert text.startswith("[ERROR] stage=register failed")
    assert "ValueError: boom" in text
