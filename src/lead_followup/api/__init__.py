"""
API Layer.

Flask HTTP endpoints and error handling.
"""

# The blueprint is registered in app.py via:
#   from lead_followup.api.routes import api_bp

__all__ = ["api_bp"]


def __getattr__(name: str):
    """Lazy import to avoid circular dependencies."""
    if name == "api_bp":
        from lead_followup.api.routes import api_bp
        return api_bp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
