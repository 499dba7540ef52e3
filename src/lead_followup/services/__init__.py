"""
Services Layer.

Business logic orchestration:
- Alert classification and aggregation
- Follow-up settings
- Follow-up tasks
- Notification scheduling
"""

from lead_followup.services.alerts import AlertService, NotificationSummary
from lead_followup.services.classification import (
    Alert,
    AlertPriority,
    AlertType,
    classify,
    sort_alerts,
)
from lead_followup.services.follow_ups import FollowUpService
from lead_followup.services.notification_scheduler import (
    NotificationScheduler,
    SchedulerState,
)
from lead_followup.services.settings import SettingsService


__all__ = [
    "Alert",
    "AlertPriority",
    "AlertService",
    "AlertType",
    "FollowUpService",
    "NotificationScheduler",
    "NotificationSummary",
    "SchedulerState",
    "SettingsService",
    "classify",
    "sort_alerts",
]
