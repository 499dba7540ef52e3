"""
Infrastructure Layer.

This layer contains all external dependencies and adapters:
- Logging configuration
- Metrics and circuit breaker
- Firestore repositories
- HTTP client for the Leadfollow API
- Platform notifier and scheduler state
"""

from lead_followup.infrastructure.logging import (
    get_logger,
    log_duration,
    log_request_context,
    logger,
    StructuredLogger,
)


__all__ = [
    "get_logger",
    "log_duration",
    "log_request_context",
    "logger",
    "StructuredLogger",
]
