"""
Firestore Data Models.

Domain records stored in Firestore, with their document mapping
(snake_case) and their JSON projection (camelCase API contract).
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from lead_followup.core.time_utils import ensure_aware, parse_datetime


def _parse_timestamp(value: Any) -> Optional[datetime]:
    """Read a Firestore timestamp, datetime or ISO string as aware UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    if hasattr(value, "timestamp"):
        return datetime.fromtimestamp(value.timestamp(), tz=timezone.utc)
    if isinstance(value, str):
        return parse_datetime(value)
    return None


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class FollowUpType(str, Enum):
    """Kind of follow-up action."""
    EMAIL = "email"
    CALL = "call"
    MEETING = "meeting"


@dataclass(frozen=True)
class Prospect:
    """
    A tracked lead owned by one user.

    Attributes:
        doc_id: Firestore document ID.
        user_id: Owning user.
        name: Display name.
        email: Contact email address.
        last_contact_date: Last inbound or outbound communication.
    """
    doc_id: str
    user_id: str
    name: str = ""
    email: str = ""
    company: Optional[str] = None
    position: Optional[str] = None
    phone: Optional[str] = None
    status: str = "active"
    category: Optional[str] = None
    last_contact_date: Optional[datetime] = None

    @classmethod
    def from_firestore(cls, doc_id: str, data: Dict[str, Any]) -> "Prospect":
        return cls(
            doc_id=doc_id,
            user_id=str(data.get("user_id", "")),
            name=data.get("name", ""),
            email=data.get("email", ""),
            company=data.get("company"),
            position=data.get("position"),
            phone=data.get("phone"),
            status=data.get("status") or "active",
            category=data.get("category"),
            last_contact_date=_parse_timestamp(data.get("last_contact_date")),
        )

    def to_firestore(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "company": self.company,
            "position": self.position,
            "phone": self.phone,
            "status": self.status,
            "category": self.category,
            "last_contact_date": self.last_contact_date,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.doc_id,
            "userId": self.user_id,
            "name": self.name,
            "email": self.email,
            "company": self.company,
            "position": self.position,
            "phone": self.phone,
            "status": self.status,
            "category": self.category,
            "lastContactDate": _iso(self.last_contact_date),
        }


@dataclass(frozen=True)
class FollowUp:
    """
    A scheduled follow-up task for a prospect.

    Attributes:
        doc_id: Firestore document ID (empty until stored).
        prospect_id: The prospect to re-engage.
        user_id: Owner of the prospect.
        due_date: When the follow-up is due.
        type: email, call or meeting.
        completed: Whether the task has been resolved.
        completed_date: When it was resolved.
        auto_created: True for tasks made from alerts.
    """
    doc_id: str
    prospect_id: str
    user_id: str
    due_date: datetime
    type: FollowUpType = FollowUpType.EMAIL
    notes: Optional[str] = None
    completed: bool = False
    completed_date: Optional[datetime] = None
    title: Optional[str] = None
    priority: Optional[str] = None
    auto_created: bool = False

    @property
    def is_pending(self) -> bool:
        return not self.completed

    @classmethod
    def from_firestore(cls, doc_id: str, data: Dict[str, Any]) -> "FollowUp":
        """
        Raises:
            ValueError: If due_date is missing or type is unknown.
        """
        due_date = _parse_timestamp(data.get("due_date"))
        if due_date is None:
            raise ValueError(f"follow-up {doc_id} has no due_date")

        return cls(
            doc_id=doc_id,
            prospect_id=str(data.get("prospect_id", "")),
            user_id=str(data.get("user_id", "")),
            due_date=due_date,
            type=FollowUpType(data.get("type") or FollowUpType.EMAIL.value),
            notes=data.get("notes"),
            completed=bool(data.get("completed", False)),
            completed_date=_parse_timestamp(data.get("completed_date")),
            title=data.get("title"),
            priority=data.get("priority"),
            auto_created=bool(data.get("auto_created", False)),
        )

    def to_firestore(self) -> Dict[str, Any]:
        data = {
            "prospect_id": self.prospect_id,
            "user_id": self.user_id,
            "due_date": self.due_date,
            "type": self.type.value,
            "notes": self.notes,
            "completed": self.completed,
            "completed_date": self.completed_date,
            "auto_created": self.auto_created,
        }

        if self.title:
            data["title"] = self.title
        if self.priority:
            data["priority"] = self.priority

        return data

    def with_id(self, doc_id: str) -> "FollowUp":
        return replace(self, doc_id=doc_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.doc_id,
            "prospectId": self.prospect_id,
            "dueDate": _iso(self.due_date),
            "type": self.type.value,
            "notes": self.notes,
            "completed": self.completed,
            "completedDate": _iso(self.completed_date),
            "title": self.title,
            "priority": self.priority,
            "autoCreated": self.auto_created,
        }


@dataclass(frozen=True)
class PendingFollowUp:
    """A pending follow-up joined with its prospect."""
    follow_up: FollowUp
    prospect: Prospect

    def to_dict(self) -> Dict[str, Any]:
        return {**self.follow_up.to_dict(), "prospect": self.prospect.to_dict()}


@dataclass(frozen=True)
class FollowUpSettings:
    """
    Per-user follow-up thresholds and notification switches.

    Only standard_follow_up_days drives alert classification; the
    priority-day fields are stored and served for the settings screen.
    """
    user_id: str
    initial_response_days: int = 2
    standard_follow_up_days: int = 4
    high_priority_days: int = 3
    medium_priority_days: int = 1
    low_priority_days: int = 3
    notify_email: bool = True
    notify_browser: bool = True
    notify_daily_digest: bool = True

    @classmethod
    def from_firestore(cls, doc_id: str, data: Dict[str, Any]) -> "FollowUpSettings":
        defaults = cls(user_id=doc_id)
        return cls(
            user_id=doc_id,
            **{
                name: data.get(name, getattr(defaults, name))
                for name in FOLLOWUP_SETTINGS_FIELDS
            },
        )

    def to_firestore(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in FOLLOWUP_SETTINGS_FIELDS}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "initialResponseDays": self.initial_response_days,
            "standardFollowUpDays": self.standard_follow_up_days,
            "notifyEmail": self.notify_email,
            "notifyBrowser": self.notify_browser,
            "notifyDailyDigest": self.notify_daily_digest,
            "highPriorityDays": self.high_priority_days,
            "mediumPriorityDays": self.medium_priority_days,
            "lowPriorityDays": self.low_priority_days,
        }


FOLLOWUP_SETTINGS_FIELDS = (
    "initial_response_days",
    "standard_follow_up_days",
    "high_priority_days",
    "medium_priority_days",
    "low_priority_days",
    "notify_email",
    "notify_browser",
    "notify_daily_digest",
)
