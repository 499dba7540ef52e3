"""
Alert Aggregation Service.

Builds the sorted alert list for a user and turns alerts into
follow-up tasks on request.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Any, Callable, Dict, List, Optional

from lead_followup.config import settings as app_settings
from lead_followup.core import add_days, get_timezone, now_utc
from lead_followup.core.exceptions import RepositoryError
from lead_followup.infrastructure.firestore import (
    FollowUp,
    FollowUpRepository,
    FollowUpType,
    ProspectRepository,
)
from lead_followup.infrastructure.logging import get_logger, log_duration
from lead_followup.infrastructure.metrics import get_metrics
from lead_followup.services.classification import (
    Alert,
    AlertPriority,
    AlertType,
    classify,
    sort_alerts,
)
from lead_followup.services.settings import SettingsService


logger = get_logger(__name__)

TASK_ALERT_TYPES = frozenset([AlertType.FOLLOW_UP_NEEDED, AlertType.OVERDUE_FOLLOW_UP])


@dataclass(frozen=True)
class NotificationSummary:
    """Alert counts for the dashboard plus the most urgent alerts."""
    total_alerts: int = 0
    high_priority_count: int = 0
    medium_priority_count: int = 0
    low_priority_count: int = 0
    new_prospects_count: int = 0
    overdue_follow_ups_count: int = 0
    alerts: List[Alert] = field(default_factory=list)

    @classmethod
    def from_alerts(cls, alerts: List[Alert], limit: int) -> "NotificationSummary":
        priorities = Counter(a.priority for a in alerts)
        types = Counter(a.type for a in alerts)
        return cls(
            total_alerts=len(alerts),
            high_priority_count=priorities[AlertPriority.HIGH],
            medium_priority_count=priorities[AlertPriority.MEDIUM],
            low_priority_count=priorities[AlertPriority.LOW],
            new_prospects_count=types[AlertType.NEW_PROSPECT],
            overdue_follow_ups_count=types[AlertType.OVERDUE_FOLLOW_UP],
            alerts=alerts[:limit],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalAlerts": self.total_alerts,
            "highPriorityCount": self.high_priority_count,
            "mediumPriorityCount": self.medium_priority_count,
            "lowPriorityCount": self.low_priority_count,
            "newProspectsCount": self.new_prospects_count,
            "overdueFollowUpsCount": self.overdue_follow_ups_count,
            "alerts": [a.to_dict() for a in self.alerts],
        }


class AlertService:
    """
    Service for follow-up alerts.

    Responsible for:
    - Classifying every prospect of a user against their settings
    - Sorting alerts by priority
    - Creating follow-up tasks for prospects that need one
    """

    def __init__(
        self,
        prospect_repository: Optional[ProspectRepository] = None,
        followup_repository: Optional[FollowUpRepository] = None,
        settings_service: Optional[SettingsService] = None,
        clock: Callable[[], datetime] = now_utc,
        tz: Optional[tzinfo] = None,
    ) -> None:
        self._prospect_repo = prospect_repository or ProspectRepository()
        self._followup_repo = followup_repository or FollowUpRepository()
        self._settings_service = settings_service or SettingsService()
        self._clock = clock
        self._tz = tz if tz is not None else get_timezone(app_settings.timezone)

    @log_duration("get_alerts")
    def get_alerts(self, user_id: str) -> List[Alert]:
        """
        Compute the sorted alert list for a user.

        A prospect whose follow-ups cannot be loaded is logged and left
        out; the rest of the list is still returned.

        Raises:
            RepositoryError: If settings or the prospect list cannot be loaded.
        """
        settings = self._settings_service.get_or_create(user_id)
        prospects = self._prospect_repo.get_by_user(user_id)
        now = self._clock()

        alerts = []
        skipped = 0
        for prospect in prospects:
            try:
                follow_ups = self._followup_repo.get_by_prospect(prospect.doc_id)
            except RepositoryError as e:
                skipped += 1
                logger.error(
                    f"Skipping prospect {prospect.doc_id}: {e}",
                    extra={"extra_fields": {
                        "prospect_id": prospect.doc_id,
                        "error_type": type(e).__name__,
                    }}
                )
                continue

            alert = classify(prospect, settings, follow_ups, now=now, tz=self._tz)
            if alert is not None:
                alerts.append(alert)

        alerts = sort_alerts(alerts)

        metrics = get_metrics()
        for alert in alerts:
            metrics.alerts_generated_total.inc(
                type=alert.type.value,
                priority=alert.priority.value,
            )

        logger.info(
            f"Computed {len(alerts)} alerts for user {user_id}",
            extra={"extra_fields": {
                "user_id": user_id,
                "prospect_count": len(prospects),
                "alert_count": len(alerts),
                "skipped_count": skipped,
            }}
        )

        return alerts

    @log_duration("auto_create_follow_up_tasks")
    def auto_create_follow_up_tasks(self, user_id: str) -> int:
        """
        Create a follow-up task for every prospect that needs one.

        new_prospect alerts are left to the user. Each insert re-checks
        for a pending follow-up at write time, so running this twice in
        a row creates each task once.

        Returns:
            Number of tasks created.
        """
        alerts = self.get_alerts(user_id)
        due_date = add_days(self._clock(), app_settings.followup.auto_task_due_days)

        created = 0
        for alert in alerts:
            if alert.type not in TASK_ALERT_TYPES:
                continue

            task = FollowUp(
                doc_id="",  # Will be assigned by Firestore
                prospect_id=alert.prospect.doc_id,
                user_id=user_id,
                due_date=due_date,
                type=FollowUpType.EMAIL,
                notes=alert.message,
                completed=False,
                title=f"Follow up with {alert.prospect.name}",
                priority=alert.priority.value,
                auto_created=True,
            )

            if self._followup_repo.create_if_no_pending(task) is not None:
                created += 1

        if created:
            get_metrics().followups_auto_created_total.inc(created)

        logger.info(
            f"Auto-created {created} follow-up tasks for user {user_id}",
            extra={"extra_fields": {
                "user_id": user_id,
                "alert_count": len(alerts),
                "tasks_created": created,
            }}
        )

        return created

    def get_notification_summary(self, user_id: str) -> NotificationSummary:
        """Counts by priority and type plus the top alerts."""
        return NotificationSummary.from_alerts(
            self.get_alerts(user_id),
            app_settings.followup.summary_limit,
        )
