"""
Custom exceptions for the lead follow-up service.

Provides a hierarchy of business and infrastructure exceptions
for proper error handling and HTTP status code mapping.
"""

from typing import Optional


class LeadFollowupError(Exception):
    """Base exception for all lead follow-up errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# =============================================================================
# Business Errors (4xx)
# =============================================================================

class BusinessError(LeadFollowupError):
    """Base exception for business logic errors (typically 4xx)."""
    pass


class ProspectNotFoundError(BusinessError):
    """Raised when a prospect document is not found."""

    def __init__(self, prospect_id: str):
        super().__init__(
            f"Prospect not found: {prospect_id}",
            {"prospect_id": prospect_id}
        )
        self.prospect_id = prospect_id


class FollowUpNotFoundError(BusinessError):
    """Raised when a follow-up document is not found."""

    def __init__(self, follow_up_id: str):
        super().__init__(
            f"Follow-up not found: {follow_up_id}",
            {"follow_up_id": follow_up_id}
        )
        self.follow_up_id = follow_up_id


class ForbiddenError(BusinessError):
    """Raised when a user touches a prospect they do not own."""

    def __init__(self, user_id: str, prospect_id: str):
        super().__init__(
            "Forbidden",
            {"user_id": user_id, "prospect_id": prospect_id}
        )


class ValidationError(BusinessError):
    """Raised when request validation fails."""

    def __init__(self, field: str, message: str):
        super().__init__(
            f"Validation error on '{field}': {message}",
            {"field": field}
        )
        self.field = field


class NotificationPermissionError(BusinessError):
    """Raised when the platform refuses notification permission."""

    def __init__(self, reason: str = "Notification permission denied"):
        super().__init__(reason)


# =============================================================================
# Infrastructure Errors (5xx)
# =============================================================================

class InfrastructureError(LeadFollowupError):
    """Base exception for infrastructure errors (typically 5xx)."""
    pass


class ConfigurationError(InfrastructureError):
    """Raised when a required configuration is missing."""

    def __init__(self, config_name: str, message: Optional[str] = None):
        msg = message or f"Configuration missing: {config_name}"
        super().__init__(msg, {"config_name": config_name})
        self.config_name = config_name


class RepositoryError(InfrastructureError):
    """Raised when a Firestore read or write fails."""

    def __init__(self, operation: str, message: str):
        super().__init__(
            f"Repository error during {operation}: {message}",
            {"operation": operation}
        )
        self.operation = operation


class ExternalServiceError(InfrastructureError):
    """Raised when an external service call fails."""

    def __init__(
        self,
        service_name: str,
        message: str,
        status_code: Optional[int] = None,
        duration_ms: Optional[int] = None,
    ):
        super().__init__(
            f"{service_name} error: {message}",
            {
                "service_name": service_name,
                "status_code": status_code,
                "duration_ms": duration_ms,
            }
        )
        self.service_name = service_name
        self.status_code = status_code
        self.duration_ms = duration_ms


class LeadfollowApiError(ExternalServiceError):
    """Raised when a call to the Leadfollow HTTP API fails."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        duration_ms: Optional[int] = None,
    ):
        super().__init__("LeadfollowAPI", message, status_code, duration_ms)
