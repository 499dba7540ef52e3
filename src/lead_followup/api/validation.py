"""
API Request Validation.

Uses Pydantic for request payload validation. Payloads use the
camelCase names of the JSON contract; models expose snake_case.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lead_followup.core.time_utils import ensure_aware
from lead_followup.infrastructure.firestore import FollowUpType


class _RequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_changes(self) -> Dict[str, Any]:
        """Fields the client actually sent, by snake_case name."""
        return self.model_dump(exclude_unset=True, exclude_none=True)


class UpdateFollowUpSettingsRequest(_RequestModel):
    """Request body for PUT /api/follow-up-settings."""

    initial_response_days: Optional[int] = Field(default=None, ge=1, le=365, alias="initialResponseDays")
    standard_follow_up_days: Optional[int] = Field(default=None, ge=1, le=365, alias="standardFollowUpDays")
    high_priority_days: Optional[int] = Field(default=None, ge=1, le=365, alias="highPriorityDays")
    medium_priority_days: Optional[int] = Field(default=None, ge=1, le=365, alias="mediumPriorityDays")
    low_priority_days: Optional[int] = Field(default=None, ge=1, le=365, alias="lowPriorityDays")
    notify_email: Optional[bool] = Field(default=None, alias="notifyEmail")
    notify_browser: Optional[bool] = Field(default=None, alias="notifyBrowser")
    notify_daily_digest: Optional[bool] = Field(default=None, alias="notifyDailyDigest")


class _FollowUpFields(_RequestModel):

    @field_validator("due_date", "completed_date", check_fields=False)
    @classmethod
    def make_aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Timestamps without an offset are UTC."""
        return ensure_aware(v) if v is not None else v


class CreateFollowUpRequest(_FollowUpFields):
    """Request body for POST /api/follow-ups."""

    prospect_id: Union[str, int] = Field(..., alias="prospectId")
    due_date: datetime = Field(..., alias="dueDate")
    type: FollowUpType = FollowUpType.EMAIL
    notes: Optional[str] = Field(default=None, max_length=5000)
    completed: bool = False
    completed_date: Optional[datetime] = Field(default=None, alias="completedDate")

    @field_validator("prospect_id")
    @classmethod
    def validate_prospect_id(cls, v: Union[str, int]) -> str:
        v = str(v).strip()
        if not v:
            raise ValueError("prospectId cannot be empty or whitespace")
        if "/" in v or "\\" in v:
            raise ValueError("prospectId cannot contain path separators")
        return v

    def to_fields(self) -> Dict[str, Any]:
        return self.model_dump()


class UpdateFollowUpRequest(_FollowUpFields):
    """Request body for PUT /api/follow-ups/<id>."""

    due_date: Optional[datetime] = Field(default=None, alias="dueDate")
    type: Optional[FollowUpType] = None
    notes: Optional[str] = Field(default=None, max_length=5000)
    completed: Optional[bool] = None
    completed_date: Optional[datetime] = Field(default=None, alias="completedDate")
