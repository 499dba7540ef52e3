"""
Tests for structured logging.
"""

import json
import logging

import pytest
from flask import g

from lead_followup.infrastructure.logging import (
    JsonFormatter,
    get_logger,
    log_duration,
)


def _record(level=logging.INFO, **fields):
    record = logging.LogRecord("test", level, __file__, 10, "hello", None, None)
    record.extra_fields = fields
    return record


def _format(record):
    return json.loads(JsonFormatter().format(record))


class TestJsonFormatter:

    def test_sensitive_keys_redacted_at_any_depth(self):
        entry = _format(_record(
            user_id="user-1",
            details={
                "session_cookie": "abc",
                "attempts": [{"api_key": "k", "status": 401}],
            },
        ))

        assert entry["user_id"] == "user-1"
        assert entry["details"]["session_cookie"] == "[redacted]"
        assert entry["details"]["attempts"] == [{"api_key": "[redacted]", "status": 401}]

    def test_long_values_are_clipped(self):
        entry = _format(_record(body="x" * 5000))

        assert entry["body"].endswith("... [truncated]")
        assert len(entry["body"]) < 1100

    def test_source_location_only_from_warning_up(self):
        assert "logging.googleapis.com/sourceLocation" not in _format(_record())

        entry = _format(_record(level=logging.WARNING))

        assert entry["severity"] == "WARNING"
        assert entry["logging.googleapis.com/sourceLocation"]["line"] == 10

    def test_no_request_fields_outside_a_request(self):
        assert "request_id" not in _format(_record())

    def test_request_context_is_merged(self, app):
        with app.test_request_context(
            "/api/follow-ups/fu-1",
            method="PUT",
            headers={"X-Request-ID": "req-42"},
        ):
            app.preprocess_request()
            entry = _format(_record())

            assert g.log_context["follow_up_id"] == "fu-1"

        assert entry["request_id"] == "req-42"
        assert entry["endpoint"] == "api.update_follow_up"
        assert entry["follow_up_id"] == "fu-1"


class TestStructuredLogger:

    def test_bound_fields_merge_with_call_fields(self):
        log = get_logger("test-bound").with_fields(component="scheduler")

        _, kwargs = log.process("m", {"extra": {"extra_fields": {"count": 2}}})

        assert kwargs["extra"]["extra_fields"] == {"component": "scheduler", "count": 2}

    def test_call_fields_win(self):
        log = get_logger("test-bound").with_fields(component="scheduler")

        _, kwargs = log.process("m", {"extra": {"extra_fields": {"component": "client"}}})

        assert kwargs["extra"]["extra_fields"]["component"] == "client"


class TestLogDuration:

    def test_returns_result(self):
        @log_duration("double")
        def double(x):
            return x * 2

        assert double(4) == 8
        assert double.__name__ == "double"

    def test_reraises(self):
        @log_duration("explode")
        def explode():
            raise KeyError("missing")

        with pytest.raises(KeyError):
            explode()
