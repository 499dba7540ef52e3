"""Core package - Pure business logic with no external dependencies."""

from lead_followup.core.exceptions import (
    BusinessError,
    ConfigurationError,
    ExternalServiceError,
    FollowUpNotFoundError,
    ForbiddenError,
    InfrastructureError,
    LeadFollowupError,
    LeadfollowApiError,
    NotificationPermissionError,
    ProspectNotFoundError,
    RepositoryError,
    ValidationError,
)
from lead_followup.core.time_utils import (
    add_days,
    days_since,
    days_until,
    ensure_aware,
    format_relative_time,
    get_timezone,
    now_utc,
    parse_datetime,
    to_local_date,
)

__all__ = [
    # Time utilities
    "add_days",
    "days_since",
    "days_until",
    "ensure_aware",
    "format_relative_time",
    "get_timezone",
    "now_utc",
    "parse_datetime",
    "to_local_date",
    # Exceptions
    "BusinessError",
    "ConfigurationError",
    "ExternalServiceError",
    "FollowUpNotFoundError",
    "ForbiddenError",
    "InfrastructureError",
    "LeadFollowupError",
    "LeadfollowApiError",
    "NotificationPermissionError",
    "ProspectNotFoundError",
    "RepositoryError",
    "ValidationError",
]
