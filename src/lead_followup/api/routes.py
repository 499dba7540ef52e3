"""
Flask API Routes.

Defines all HTTP endpoints for the lead follow-up service.
"""

from typing import Any, Dict, Tuple

from flask import Blueprint, jsonify, request
from pydantic import ValidationError as PydanticValidationError
from werkzeug.exceptions import HTTPException

from lead_followup import __version__
from lead_followup.api.auth import current_user_id, login_required
from lead_followup.api.validation import (
    CreateFollowUpRequest,
    UpdateFollowUpRequest,
    UpdateFollowUpSettingsRequest,
)
from lead_followup.core.exceptions import (
    BusinessError,
    FollowUpNotFoundError,
    ForbiddenError,
    InfrastructureError,
    ProspectNotFoundError,
    RepositoryError,
)
from lead_followup.infrastructure.logging import get_logger
from lead_followup.infrastructure.metrics import metrics_endpoint
from lead_followup.services import (
    AlertService,
    FollowUpService,
    NotificationSummary,
    SettingsService,
)


logger = get_logger(__name__)


api_bp = Blueprint("api", __name__)


def _error_response(
    message: str,
    status_code: int,
    error_type: str = "error",
) -> Tuple[Dict[str, Any], int]:
    """Create standardized error response."""
    return {
        "success": False,
        "error": message,
        "error_type": error_type,
    }, status_code


def _success_response(
    data: Dict[str, Any],
    status_code: int = 200,
) -> Tuple[Dict[str, Any], int]:
    """Create standardized success response."""
    return {
        "success": True,
        **data,
    }, status_code


def _validation_error(e: PydanticValidationError) -> Tuple[Dict[str, Any], int]:
    error = e.errors()[0]
    field = ".".join(str(part) for part in error.get("loc", ()))
    message = f"{field}: {error['msg']}" if field else error["msg"]
    return _error_response(message, 400, "validation_error")


# ============================================================================
# Health Check
# ============================================================================

@api_bp.route("/health", methods=["GET"])
def health_check() -> Tuple[Dict[str, Any], int]:
    """Liveness check."""
    return _success_response({
        "status": "healthy",
        "service": "lead-followup",
        "version": __version__,
    })


@api_bp.route("/", methods=["GET"])
def root() -> Tuple[Dict[str, Any], int]:
    return health_check()


@api_bp.route("/metrics", methods=["GET"])
def metrics():
    """Prometheus metrics endpoint."""
    return metrics_endpoint()


# ============================================================================
# Follow-up Endpoints
# ============================================================================

@api_bp.route("/api/follow-ups", methods=["GET"])
@login_required
def list_follow_ups():
    """
    Pending follow-ups of the current user, earliest due first.

    Returns:
        List of follow-ups, each with its prospect embedded.
    """
    service = FollowUpService()
    pending = service.list_pending(current_user_id())
    return jsonify([item.to_dict() for item in pending])


@api_bp.route("/api/follow-ups", methods=["POST"])
@login_required
def create_follow_up():
    """
    Schedule a follow-up for one of the user's prospects.

    Request Body:
        prospectId, dueDate, type (email|call|meeting), notes,
        completed, completedDate.
    """
    data = request.get_json(silent=True) or {}

    try:
        validated = CreateFollowUpRequest(**data)
    except PydanticValidationError as e:
        return _validation_error(e)

    service = FollowUpService()
    follow_up = service.create(current_user_id(), validated.to_fields())

    logger.info(
        f"Follow-up {follow_up.doc_id} created",
        extra={"extra_fields": {
            "follow_up_id": follow_up.doc_id,
            "prospect_id": follow_up.prospect_id,
        }}
    )
    return follow_up.to_dict(), 201


@api_bp.route("/api/follow-ups/<follow_up_id>", methods=["PUT"])
@login_required
def update_follow_up(follow_up_id: str):
    data = request.get_json(silent=True) or {}

    try:
        validated = UpdateFollowUpRequest(**data)
    except PydanticValidationError as e:
        return _validation_error(e)

    service = FollowUpService()
    follow_up = service.update(current_user_id(), follow_up_id, validated.to_changes())
    return follow_up.to_dict()


@api_bp.route("/api/follow-ups/<follow_up_id>", methods=["DELETE"])
@login_required
def delete_follow_up(follow_up_id: str):
    service = FollowUpService()
    service.delete(current_user_id(), follow_up_id)
    return "", 204


@api_bp.route("/api/prospects/<prospect_id>/follow-ups", methods=["GET"])
@login_required
def list_prospect_follow_ups(prospect_id: str):
    """All follow-ups, pending or not, of one prospect."""
    service = FollowUpService()
    follow_ups = service.list_for_prospect(current_user_id(), prospect_id)
    return jsonify([f.to_dict() for f in follow_ups])


# ============================================================================
# Settings Endpoints
# ============================================================================

@api_bp.route("/api/follow-up-settings", methods=["GET"])
@login_required
def get_follow_up_settings():
    """
    The user's follow-up settings.

    The first read stores and returns the default record.
    """
    service = SettingsService()
    return service.get_or_create(current_user_id()).to_dict()


@api_bp.route("/api/follow-up-settings", methods=["PUT"])
@login_required
def update_follow_up_settings():
    """
    Change some or all of the user's follow-up settings.

    Request Body:
        Any of initialResponseDays, standardFollowUpDays,
        highPriorityDays, mediumPriorityDays, lowPriorityDays (ints >= 1),
        notifyEmail, notifyBrowser, notifyDailyDigest (bools).
    """
    data = request.get_json(silent=True) or {}

    try:
        validated = UpdateFollowUpSettingsRequest(**data)
    except PydanticValidationError as e:
        return _validation_error(e)

    service = SettingsService()
    updated = service.update(current_user_id(), validated.to_changes())
    return updated.to_dict()


# ============================================================================
# Notification Endpoints
# ============================================================================

@api_bp.route("/api/notifications/alerts", methods=["GET"])
@login_required
def get_alerts():
    """
    Sorted follow-up alerts for the current user.

    A storage failure yields an empty list so the dashboard keeps working.
    """
    user_id = current_user_id()
    try:
        alerts = AlertService().get_alerts(user_id)
    except RepositoryError as e:
        logger.error(
            f"Error fetching follow-up alerts: {e}",
            extra={"extra_fields": {"error_type": type(e).__name__}}
        )
        return jsonify([])

    return jsonify([a.to_dict() for a in alerts])


@api_bp.route("/api/notifications/summary", methods=["GET"])
@login_required
def get_notification_summary():
    """Alert counts and the most urgent alerts."""
    user_id = current_user_id()
    try:
        summary = AlertService().get_notification_summary(user_id)
    except RepositoryError as e:
        logger.error(
            f"Error fetching notification summary: {e}",
            extra={"extra_fields": {"error_type": type(e).__name__}}
        )
        summary = NotificationSummary()

    return summary.to_dict()


@api_bp.route("/api/notifications/auto-create-tasks", methods=["POST"])
@login_required
def auto_create_tasks():
    """
    Create follow-up tasks for every prospect that needs one.

    Returns:
        {"tasksCreated": n}
    """
    user_id = current_user_id()
    try:
        created = AlertService().auto_create_follow_up_tasks(user_id)
    except RepositoryError as e:
        logger.error(
            f"Error auto-creating follow-up tasks: {e}",
            extra={"extra_fields": {"error_type": type(e).__name__}}
        )
        return _error_response("Failed to auto-create tasks", 503, "repository_error")

    return {"tasksCreated": created}


# ============================================================================
# Error Handlers
# ============================================================================

@api_bp.errorhandler(ProspectNotFoundError)
@api_bp.errorhandler(FollowUpNotFoundError)
def handle_not_found(error: BusinessError) -> Tuple[Dict[str, Any], int]:
    return _error_response(str(error), 404, "not_found")


@api_bp.errorhandler(ForbiddenError)
def handle_forbidden(error: ForbiddenError) -> Tuple[Dict[str, Any], int]:
    logger.warning(
        "Access to a prospect owned by another user",
        extra={"extra_fields": error.details}
    )
    return _error_response(str(error), 403, "forbidden")


@api_bp.errorhandler(BusinessError)
def handle_business_error(error: BusinessError) -> Tuple[Dict[str, Any], int]:
    """Handle business logic errors (4xx)."""
    logger.warning(
        f"Business error: {error}",
        extra={"extra_fields": {"error_type": type(error).__name__}}
    )
    return _error_response(str(error), 400, type(error).__name__)


@api_bp.errorhandler(InfrastructureError)
def handle_infrastructure_error(
    error: InfrastructureError,
) -> Tuple[Dict[str, Any], int]:
    """Handle storage and external service errors (5xx)."""
    logger.error(
        f"Infrastructure error: {error}",
        extra={"extra_fields": {"error_type": type(error).__name__}}
    )
    return _error_response(str(error), 503, type(error).__name__)


@api_bp.errorhandler(Exception)
def handle_unexpected_error(error: Exception):
    """Handle unexpected errors (500)."""
    if isinstance(error, HTTPException):
        return error
    logger.exception(
        f"Unexpected error: {error}",
        extra={"extra_fields": {"error_type": type(error).__name__}}
    )
    return _error_response(
        "An unexpected error occurred",
        500,
        "internal_error",
    )
