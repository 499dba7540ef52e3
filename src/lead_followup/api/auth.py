"""
Session Authentication.

Every /api route acts on behalf of the user id stored in the signed
Flask session cookie.
"""

from functools import wraps
from typing import Any, Callable

from flask import g, session


def current_user_id() -> str:
    """User id set by login_required for the current request."""
    return g.user_id


def login_required(func: Callable) -> Callable:
    """
    Reject requests without a session user.

    Usage:
        @api_bp.route("/api/follow-ups", methods=["GET"])
        @login_required
        def list_follow_ups():
            ...
    """
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        user_id = session.get("user_id")
        if user_id is None or user_id == "":
            return {"message": "Authentication required"}, 401

        g.user_id = str(user_id)
        return func(*args, **kwargs)

    return wrapper
