"""
Application configuration.

Centralizes environment variables, constants, and settings
using dataclasses for type safety and immutability.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class FirestoreSettings:
    """Firestore collection settings."""

    prospect_collection: str = field(
        default_factory=lambda: os.environ.get("PROSPECT_COLLECTION", "prospects")
    )
    followup_collection: str = field(
        default_factory=lambda: os.environ.get("FOLLOWUP_COLLECTION", "follow_ups")
    )
    followup_settings_collection: str = field(
        default_factory=lambda: os.environ.get(
            "FOLLOWUP_SETTINGS_COLLECTION", "follow_up_settings"
        )
    )


@dataclass(frozen=True)
class FollowUpDefaults:
    """Per-user follow-up defaults and alerting offsets."""

    initial_response_days: int = 2
    standard_follow_up_days: int = 4
    high_priority_days: int = 3
    medium_priority_days: int = 1
    low_priority_days: int = 3
    notify_email: bool = True
    notify_browser: bool = True
    notify_daily_digest: bool = True

    # Days past the standard window before an alert escalates
    high_offset_days: int = 7
    medium_offset_days: int = 3

    # Auto-created tasks are due this many calendar days from now
    auto_task_due_days: int = 1

    # Alerts included in the notification summary
    summary_limit: int = 10

    def as_record(self) -> Dict[str, Any]:
        """Default settings document for a new user."""
        return {
            "initial_response_days": self.initial_response_days,
            "standard_follow_up_days": self.standard_follow_up_days,
            "high_priority_days": self.high_priority_days,
            "medium_priority_days": self.medium_priority_days,
            "low_priority_days": self.low_priority_days,
            "notify_email": self.notify_email,
            "notify_browser": self.notify_browser,
            "notify_daily_digest": self.notify_daily_digest,
        }


@dataclass(frozen=True)
class NotificationSettings:
    """Browser notification scheduler settings."""

    api_url: str = field(
        default_factory=lambda: os.environ.get(
            "LEADFOLLOW_API_URL", "http://localhost:8080"
        ).rstrip("/")
    )
    session_cookie: str = field(
        default_factory=lambda: os.environ.get("LEADFOLLOW_SESSION_COOKIE", "")
    )
    interval_seconds: int = field(
        default_factory=lambda: int(os.environ.get("NOTIFY_INTERVAL_SECONDS", 30 * 60))
    )
    cooldown_seconds: int = field(
        default_factory=lambda: int(os.environ.get("NOTIFY_COOLDOWN_SECONDS", 30 * 60))
    )
    state_file: str = field(
        default_factory=lambda: os.environ.get(
            "NOTIFY_STATE_FILE",
            os.path.join(
                os.path.expanduser("~"), ".leadfollow", "last_notification_check.json"
            ),
        )
    )
    timeout_seconds: int = 15

    @property
    def is_configured(self) -> bool:
        """Check if the scheduler can reach the API."""
        return bool(self.api_url and self.session_cookie)


@dataclass(frozen=True)
class Settings:
    """Main application settings."""

    firestore: FirestoreSettings = field(default_factory=FirestoreSettings)
    followup: FollowUpDefaults = field(default_factory=FollowUpDefaults)
    notifications: NotificationSettings = field(default_factory=NotificationSettings)
    secret_key: str = field(
        default_factory=lambda: os.environ.get("SECRET_KEY", "leadfollow-secret")
    )
    timezone: Optional[str] = field(
        default_factory=lambda: os.environ.get("TIMEZONE") or None
    )
    port: int = field(default_factory=lambda: int(os.environ.get("PORT", 8080)))
    debug: bool = field(default_factory=lambda: os.environ.get("DEBUG", "false").lower() == "true")


# Singleton settings instance
settings = Settings()
