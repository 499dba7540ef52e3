"""
Firestore Infrastructure Package.

Exports:
- Data models (Prospect, FollowUp, FollowUpSettings, etc.)
- Repositories (ProspectRepository, FollowUpRepository, FollowUpSettingsRepository)
"""

from lead_followup.infrastructure.firestore.models import (
    FollowUp,
    FollowUpSettings,
    FollowUpType,
    PendingFollowUp,
    Prospect,
)
from lead_followup.infrastructure.firestore.repositories import (
    FirestoreClient,
    FollowUpRepository,
    FollowUpSettingsRepository,
    ProspectRepository,
)


__all__ = [
    # Models
    "FollowUp",
    "FollowUpSettings",
    "FollowUpType",
    "PendingFollowUp",
    "Prospect",
    # Repositories
    "FirestoreClient",
    "FollowUpRepository",
    "FollowUpSettingsRepository",
    "ProspectRepository",
]
