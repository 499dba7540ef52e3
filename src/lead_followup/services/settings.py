"""
Follow-up Settings Service.

One settings record per user, materialised with defaults on first read.
"""

from typing import Any, Dict, Optional

from lead_followup.config import settings as app_settings
from lead_followup.infrastructure.firestore import (
    FollowUpSettings,
    FollowUpSettingsRepository,
)
from lead_followup.infrastructure.logging import get_logger, log_duration


logger = get_logger(__name__)


def default_settings(user_id: str) -> FollowUpSettings:
    """The settings a new user starts with."""
    return FollowUpSettings(user_id=user_id, **app_settings.followup.as_record())


class SettingsService:
    """
    Service for per-user follow-up settings.

    Responsible for:
    - Creating the default record the first time a user's settings are read
    - Applying validated updates
    """

    def __init__(
        self,
        settings_repository: Optional[FollowUpSettingsRepository] = None,
    ) -> None:
        self._settings_repo = settings_repository or FollowUpSettingsRepository()

    def get_or_create(self, user_id: str) -> FollowUpSettings:
        """
        Get a user's settings, creating the defaults if none exist.

        Raises:
            RepositoryError: If the store cannot be read or written.
        """
        record = self._settings_repo.get(user_id)
        if record is not None:
            return record

        logger.info(
            f"Materializing default follow-up settings for user {user_id}",
            extra={"extra_fields": {"user_id": user_id}}
        )
        return self._settings_repo.create(default_settings(user_id))

    @log_duration("update_follow_up_settings")
    def update(self, user_id: str, changes: Dict[str, Any]) -> FollowUpSettings:
        """
        Apply already-validated field changes.

        Args:
            user_id: The owner.
            changes: snake_case field names to new values.

        Returns:
            The stored settings after the update.
        """
        current = self.get_or_create(user_id)
        if not changes:
            return current
        return self._settings_repo.update(user_id, changes)
