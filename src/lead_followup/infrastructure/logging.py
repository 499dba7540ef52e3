"""
Structured JSON logging.

Every record is one JSON line on stdout with a Cloud Logging severity.
Inside a Flask request the line also carries the request id, the
endpoint, the session user and any prospect or follow-up id taken from
the URL. Keys that look like credentials are redacted, nested values
included.
"""

import json
import logging
import os
import sys
import time
import uuid
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Dict, Mapping, TypeVar

from flask import Flask, g, has_request_context, request, session


F = TypeVar("F", bound=Callable[..., Any])

# URL parameters copied into the log context of a request
ROUTE_FIELDS = ("follow_up_id", "prospect_id")

# Polled endpoints that would drown the request log
QUIET_PATHS = frozenset(["/health", "/metrics", "/"])

REDACTED = "[redacted]"
MAX_VALUE_LENGTH = 1000


def _is_sensitive(key: str) -> bool:
    key = key.lower()
    return any(marker in key for marker in JsonFormatter.SENSITIVE_MARKERS)


def _scrub(value: Any) -> Any:
    """Redact sensitive keys at any depth and clip long strings."""
    if isinstance(value, Mapping):
        return {
            k: REDACTED if _is_sensitive(str(k)) else _scrub(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_scrub(v) for v in value]
    if isinstance(value, str) and len(value) > MAX_VALUE_LENGTH:
        return value[:MAX_VALUE_LENGTH] + "... [truncated]"
    return value


class JsonFormatter(logging.Formatter):
    """Formats records as Cloud Logging JSON lines."""

    SENSITIVE_MARKERS = frozenset([
        "password", "secret", "token", "api_key", "apikey",
        "authorization", "cookie", "credential", "private",
    ])

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "severity": record.levelname,
            "message": record.getMessage(),
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "logger": record.name,
        }

        if has_request_context():
            entry.update(getattr(g, "log_context", {}))

        entry.update(_scrub(getattr(record, "extra_fields", None) or {}))

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        if record.levelno >= logging.WARNING:
            entry["logging.googleapis.com/sourceLocation"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(entry, ensure_ascii=False, default=str)


class StructuredLogger(logging.LoggerAdapter):
    """Adapter merging bound fields with per-call extra_fields."""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = dict(kwargs.get("extra") or {})
        fields = {**self.extra, **extra.pop("extra_fields", {})}
        kwargs["extra"] = {**extra, "extra_fields": fields}
        return msg, kwargs

    def with_fields(self, **fields: Any) -> "StructuredLogger":
        """Logger that adds `fields` to every record."""
        return StructuredLogger(self.logger, {**self.extra, **fields})


def get_logger(name: str = "lead-followup") -> StructuredLogger:
    """
    Structured logger writing JSON lines to stdout.

    The level comes from LOG_LEVEL (default DEBUG).
    """
    base_logger = logging.getLogger(name)

    if not base_logger.handlers:
        level = getattr(logging, os.environ.get("LOG_LEVEL", "DEBUG").upper(), logging.DEBUG)
        base_logger.setLevel(level)

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
        base_logger.addHandler(handler)
        base_logger.propagate = False

    return StructuredLogger(base_logger, {})


def _request_id() -> str:
    trace = request.headers.get("X-Cloud-Trace-Context", "").split("/")[0]
    return request.headers.get("X-Request-ID") or trace or uuid.uuid4().hex[:8]


def log_request_context(app: Flask) -> None:
    """
    Attach a log context to every request and log each response.

    Health and metrics requests are not logged; 5xx responses are logged
    as errors.
    """
    request_logger = get_logger("request")

    @app.before_request
    def bind_log_context() -> None:
        context = {
            "request_id": _request_id(),
            "endpoint": request.endpoint,
        }
        user_id = session.get("user_id")
        if user_id:
            context["user_id"] = str(user_id)
        for name in ROUTE_FIELDS:
            if request.view_args and name in request.view_args:
                context[name] = request.view_args[name]

        g.log_context = context
        g.start_time = time.time()

    @app.after_request
    def log_response(response):
        if request.path in QUIET_PATHS:
            return response

        duration_ms = int((time.time() - g.start_time) * 1000) if "start_time" in g else None
        level = logging.ERROR if response.status_code >= 500 else logging.INFO
        request_logger.log(
            level,
            f"{request.method} {request.path} -> {response.status_code}",
            extra={"extra_fields": {
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            }}
        )
        return response


def log_duration(operation: str) -> Callable[[F], F]:
    """
    Log how long `operation` took, at debug on success and error on failure.

    Exceptions are re-raised unchanged.
    """
    def decorator(func: F) -> F:
        op_logger = get_logger(func.__module__)

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.perf_counter()
            status = "error"
            try:
                result = func(*args, **kwargs)
                status = "success"
                return result
            except Exception as e:
                op_logger.error(
                    f"{operation} failed: {e}",
                    extra={"extra_fields": {"operation": operation, "error_type": type(e).__name__}}
                )
                raise
            finally:
                op_logger.debug(
                    f"{operation} finished",
                    extra={"extra_fields": {
                        "operation": operation,
                        "status": status,
                        "duration_ms": int((time.perf_counter() - start) * 1000),
                    }}
                )
        return wrapper  # type: ignore
    return decorator


logger = get_logger("lead-followup")
