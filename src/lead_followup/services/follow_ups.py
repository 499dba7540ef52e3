"""
Follow-up Task Service.

Manual scheduling, completion and removal of follow-up tasks, with
ownership checks against the prospect's user.
"""

from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from lead_followup.core import now_utc
from lead_followup.core.exceptions import (
    FollowUpNotFoundError,
    ForbiddenError,
    ProspectNotFoundError,
    ValidationError,
)
from lead_followup.infrastructure.firestore import (
    FollowUp,
    FollowUpRepository,
    FollowUpType,
    PendingFollowUp,
    Prospect,
    ProspectRepository,
)
from lead_followup.infrastructure.logging import get_logger, log_duration


logger = get_logger(__name__)


class FollowUpService:
    """
    Service for follow-up tasks.

    Responsible for:
    - Listing a user's pending follow-ups joined with their prospects
    - Creating, updating and deleting follow-ups the user owns
    """

    def __init__(
        self,
        prospect_repository: Optional[ProspectRepository] = None,
        followup_repository: Optional[FollowUpRepository] = None,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self._prospect_repo = prospect_repository or ProspectRepository()
        self._followup_repo = followup_repository or FollowUpRepository()
        self._clock = clock

    def _owned_prospect(self, user_id: str, prospect_id: str) -> Prospect:
        """
        Load a prospect and check ownership.

        Raises:
            ProspectNotFoundError: If it doesn't exist.
            ForbiddenError: If another user owns it.
        """
        prospect = self._prospect_repo.get_by_id(prospect_id)
        if prospect.user_id != user_id:
            raise ForbiddenError(user_id, prospect_id)
        return prospect

    def _owned_follow_up(self, user_id: str, follow_up_id: str) -> FollowUp:
        follow_up = self._followup_repo.get_by_id(follow_up_id)
        if follow_up is None:
            raise FollowUpNotFoundError(follow_up_id)
        try:
            self._owned_prospect(user_id, follow_up.prospect_id)
        except ProspectNotFoundError:
            raise ForbiddenError(user_id, follow_up.prospect_id) from None
        return follow_up

    @log_duration("list_pending_follow_ups")
    def list_pending(self, user_id: str) -> List[PendingFollowUp]:
        """
        Pending follow-ups of a user, earliest due first.

        A follow-up whose prospect is missing or owned by someone else
        is a data-integrity fault: it is logged and left out.
        """
        prospects = {p.doc_id: p for p in self._prospect_repo.get_by_user(user_id)}

        joined = []
        for follow_up in self._followup_repo.get_pending_for_user(user_id):
            prospect = prospects.get(follow_up.prospect_id)
            if prospect is None:
                logger.warning(
                    f"Follow-up {follow_up.doc_id} references unknown prospect {follow_up.prospect_id}",
                    extra={"extra_fields": {
                        "follow_up_id": follow_up.doc_id,
                        "prospect_id": follow_up.prospect_id,
                        "user_id": user_id,
                    }}
                )
                continue
            joined.append(PendingFollowUp(follow_up=follow_up, prospect=prospect))

        joined.sort(key=lambda item: item.follow_up.due_date)
        return joined

    def list_for_prospect(self, user_id: str, prospect_id: str) -> List[FollowUp]:
        self._owned_prospect(user_id, prospect_id)
        return self._followup_repo.get_by_prospect(prospect_id)

    def create(self, user_id: str, fields: Dict[str, Any]) -> FollowUp:
        """
        Schedule a follow-up by hand.

        Args:
            user_id: The caller.
            fields: Validated values (prospect_id, due_date, type, notes,
                completed, completed_date).
        """
        self._owned_prospect(user_id, fields["prospect_id"])

        completed = bool(fields.get("completed", False))
        completed_date = fields.get("completed_date")
        if completed and completed_date is None:
            completed_date = self._clock()

        task = FollowUp(
            doc_id="",
            prospect_id=fields["prospect_id"],
            user_id=user_id,
            due_date=fields["due_date"],
            type=FollowUpType(fields.get("type") or FollowUpType.EMAIL.value),
            notes=fields.get("notes"),
            completed=completed,
            completed_date=completed_date if completed else None,
        )
        return self._followup_repo.create(task)

    def update(self, user_id: str, follow_up_id: str, changes: Dict[str, Any]) -> FollowUp:
        """
        Change a follow-up.

        Marking it completed stamps completed_date with now unless one
        is supplied; reopening it clears completed_date.

        Raises:
            ValidationError: If completed_date is set on an open follow-up.
        """
        current = self._owned_follow_up(user_id, follow_up_id)

        updates = dict(changes)
        if "type" in updates and updates["type"] is not None:
            updates["type"] = FollowUpType(updates["type"])

        updated = replace(current, **updates)
        if updates.get("completed_date") is not None and not updated.completed:
            raise ValidationError("completedDate", "follow-up is not completed")
        if updated.completed and updated.completed_date is None:
            updated = replace(updated, completed_date=self._clock())
        elif not updated.completed and updated.completed_date is not None:
            updated = replace(updated, completed_date=None)
        return self._followup_repo.update(updated)

    def delete(self, user_id: str, follow_up_id: str) -> None:
        self._owned_follow_up(user_id, follow_up_id)
        self._followup_repo.delete(follow_up_id)
