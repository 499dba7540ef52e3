"""
HTTP Client Package.

External service clients:
- Leadfollow API (pending follow-ups and settings)
"""

from lead_followup.infrastructure.http.leadfollow_client import (
    LeadfollowClient,
    ScheduledFollowUp,
)


__all__ = [
    "LeadfollowClient",
    "ScheduledFollowUp",
]
