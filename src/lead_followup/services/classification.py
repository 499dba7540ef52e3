"""
Follow-up Alert Classification.

Decides, for one prospect, whether it needs attention and how urgently.
Pure functions: no I/O, no clock reads unless `now` is omitted.
"""

from dataclasses import dataclass
from datetime import datetime, tzinfo
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from lead_followup.config import settings as app_settings
from lead_followup.core.time_utils import days_since
from lead_followup.infrastructure.firestore import (
    FollowUp,
    FollowUpSettings,
    Prospect,
)


class AlertType(str, Enum):
    NEW_PROSPECT = "new_prospect"
    FOLLOW_UP_NEEDED = "follow_up_needed"
    OVERDUE_FOLLOW_UP = "overdue_follow_up"


class AlertPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


PRIORITY_ORDER = {
    AlertPriority.HIGH: 3,
    AlertPriority.MEDIUM: 2,
    AlertPriority.LOW: 1,
}

NEW_PROSPECT_MESSAGE = "New prospect detected - consider reaching out for initial contact"


@dataclass(frozen=True)
class Alert:
    """A prospect that needs attention. Computed, never stored."""
    type: AlertType
    priority: AlertPriority
    prospect: Prospect
    message: str
    days_since_last_contact: int
    due_date: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "type": self.type.value,
            "priority": self.priority.value,
            "prospect": self.prospect.to_dict(),
            "message": self.message,
            "daysSinceLastContact": self.days_since_last_contact,
        }
        if self.due_date:
            data["dueDate"] = self.due_date.isoformat()
        return data


def has_pending_follow_up(follow_ups: Iterable[FollowUp]) -> bool:
    return any(not f.completed for f in follow_ups)


def classify(
    prospect: Prospect,
    settings: FollowUpSettings,
    existing_follow_ups: Iterable[FollowUp],
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> Optional[Alert]:
    """
    Classify one prospect.

    Rules, first match wins:
    1. Any pending follow-up: no alert.
    2. Never contacted: new_prospect / medium.
    3. Fewer than standard_follow_up_days since contact: no alert.
    4. At least standard + 7 days: overdue_follow_up / high.
    5. At least standard + 3 days: overdue_follow_up / medium.
    6. Otherwise: follow_up_needed / low.

    Days are counted in whole local calendar days. A last contact in
    the future yields a negative count and therefore no alert.

    Args:
        prospect: The prospect to evaluate.
        settings: The owner's follow-up settings (already validated).
        existing_follow_ups: All follow-ups of this prospect.
        now: Evaluation time, defaults to the current time.
        tz: Zone whose midnight bounds a day, defaults to the host zone.

    Returns:
        An Alert, or None when the prospect is current.
    """
    if has_pending_follow_up(existing_follow_ups):
        return None

    if prospect.last_contact_date is None:
        return Alert(
            type=AlertType.NEW_PROSPECT,
            priority=AlertPriority.MEDIUM,
            prospect=prospect,
            message=NEW_PROSPECT_MESSAGE,
            days_since_last_contact=0,
        )

    days = days_since(prospect.last_contact_date, now, tz)
    window = settings.standard_follow_up_days

    if days < window:
        return None

    offsets = app_settings.followup
    if days >= window + offsets.high_offset_days:
        alert_type = AlertType.OVERDUE_FOLLOW_UP
        priority = AlertPriority.HIGH
        message = f"Urgent: No contact for {days} days - immediate follow-up needed"
    elif days >= window + offsets.medium_offset_days:
        alert_type = AlertType.OVERDUE_FOLLOW_UP
        priority = AlertPriority.MEDIUM
        message = f"Overdue: Follow-up needed ({days} days since last contact)"
    else:
        alert_type = AlertType.FOLLOW_UP_NEEDED
        priority = AlertPriority.LOW
        message = f"Follow-up recommended ({days} days since last contact)"

    return Alert(
        type=alert_type,
        priority=priority,
        prospect=prospect,
        message=message,
        days_since_last_contact=days,
    )


def sort_alerts(alerts: Iterable[Alert]) -> List[Alert]:
    """Highest priority first; equal priorities keep their order."""
    return sorted(alerts, key=lambda a: PRIORITY_ORDER[a.priority], reverse=True)
