"""Unit tests for the logging utilities."""

from __future__ import annotations

import json
import logging

from authcore.core.logger import (
    JSONFormatter,
    TokenRedactionFilter,
    configure_logging,
    ensure_request_id,
)


def _record(msg: str, *args, **extra) -> logging.LogRecord:
    record = logging.LogRecord("authcore.test", logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_configure_logging_sets_level() -> None:
    """``configure_logging`` should set the root logger level."""
    root = logging.getLogger()
    previous = root.level
    try:
        configure_logging("DEBUG")
        assert root.level == logging.DEBUG
    finally:
        configure_logging(logging.getLevelName(previous))


def test_json_formatter_includes_structured_fields() -> None:
    record = _record("auth.login", event="auth.login", user_id=7, family="abc", request_id="r-1")

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "auth.login"
    assert payload["event"] == "auth.login"
    assert payload["user_id"] == 7
    assert payload["family"] == "abc"
    assert payload["request_id"] == "r-1"
    assert "count" not in payload


def test_redaction_filter_masks_query_tokens() -> None:
    record = _record('"GET /api/v1/auth/verify-email?token=%s HTTP/1.1" 200', "s3cr3t-Value_x")

    assert TokenRedactionFilter().filter(record) is True
    rendered = record.getMessage()
    assert "s3cr3t-Value_x" not in rendered
    assert "token=[redacted]" in rendered


def test_redaction_filter_leaves_other_messages_alone() -> None:
    record = _record("sessions.cleanup count=%s", 3)

    TokenRedactionFilter().filter(record)

    assert record.getMessage() == "sessions.cleanup count=3"


def test_request_id_reuses_incoming_header(app) -> None:
    with app.test_request_context("/", headers={"X-Request-ID": "abc-123"}):
        assert ensure_request_id() == "abc-123"
        assert ensure_request_id() == "abc-123"


def test_request_id_generated_outside_requests() -> None:
    assert ensure_request_id() != ensure_request_id()
