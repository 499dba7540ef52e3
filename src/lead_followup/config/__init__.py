"""Configuration package."""

from lead_followup.config.settings import (
    Settings,
    FirestoreSettings,
    FollowUpDefaults,
    NotificationSettings,
    settings,
)

__all__ = [
    "Settings",
    "FirestoreSettings",
    "FollowUpDefaults",
    "NotificationSettings",
    "settings",
]
