"""
Firestore Repositories.

Repository pattern implementation for Firestore collections.
Every Google API failure surfaces as RepositoryError.
"""

from datetime import datetime
from functools import wraps
from typing import Any, Callable, Dict, List, Optional

from google.api_core.exceptions import Conflict, GoogleAPICallError
from google.cloud import firestore

from lead_followup.config import settings
from lead_followup.core.exceptions import ProspectNotFoundError, RepositoryError
from lead_followup.core.time_utils import ensure_aware
from lead_followup.infrastructure.firestore.models import (
    FollowUp,
    FollowUpSettings,
    Prospect,
)
from lead_followup.infrastructure.logging import get_logger, log_duration


logger = get_logger(__name__)


def _wrap_errors(operation: str) -> Callable:
    """Translate Google API errors into RepositoryError."""
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except GoogleAPICallError as e:
                raise RepositoryError(operation, str(e)) from e
        return wrapper
    return decorator


# Raised by from_firestore on documents it cannot read
DECODE_ERRORS = (KeyError, TypeError, ValueError)


def _decode(model, doc, operation: str):
    """Decode one document; an unreadable one is a RepositoryError."""
    try:
        return model.from_firestore(doc.id, doc.to_dict() or {})
    except DECODE_ERRORS as e:
        raise RepositoryError(operation, f"document {doc.id} is corrupt: {e}") from e


def _decode_each(model, docs, collection: str) -> list:
    """Decode a query result, logging and leaving out unreadable documents."""
    records = []
    for doc in docs:
        try:
            records.append(model.from_firestore(doc.id, doc.to_dict() or {}))
        except DECODE_ERRORS as e:
            logger.error(
                f"Skipping corrupt {collection} document {doc.id}: {e}",
                extra={"extra_fields": {
                    "collection": collection,
                    "document_id": doc.id,
                    "error_type": type(e).__name__,
                }}
            )
    return records


class FirestoreClient:
    """Firestore client singleton."""

    _instance: Optional[firestore.Client] = None

    @classmethod
    def get_client(cls) -> firestore.Client:
        """Get or create Firestore client."""
        if cls._instance is None:
            cls._instance = firestore.Client()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset client (for testing)."""
        cls._instance = None


class ProspectRepository:
    """Repository for prospect documents."""

    def __init__(self, client: Optional[firestore.Client] = None) -> None:
        self._client = client or FirestoreClient.get_client()
        self._collection_name = settings.firestore.prospect_collection

    @property
    def collection(self):
        return self._client.collection(self._collection_name)

    @_wrap_errors("get_prospect")
    def get_by_id(self, prospect_id: str) -> Prospect:
        """
        Get a prospect by its ID.

        Raises:
            ProspectNotFoundError: If the prospect doesn't exist.
        """
        doc = self.collection.document(prospect_id).get()

        if not doc.exists:
            raise ProspectNotFoundError(prospect_id)

        return _decode(Prospect, doc, "get_prospect")

    @log_duration("fetch_prospects")
    @_wrap_errors("get_prospects_by_user")
    def get_by_user(self, user_id: str) -> List[Prospect]:
        """All prospects owned by a user, in storage order."""
        query = self.collection.where("user_id", "==", user_id)
        return _decode_each(Prospect, query.stream(), self._collection_name)

    @_wrap_errors("record_contact")
    def record_contact(self, prospect_id: str, contact_date: datetime) -> bool:
        """
        Move a prospect's last contact date forward.

        Older dates than the stored one are ignored, so replaying
        historical emails never rewinds the contact clock.

        Returns:
            True if the stored date changed.
        """
        prospect = self.get_by_id(prospect_id)
        contact_date = ensure_aware(contact_date)

        if prospect.last_contact_date and prospect.last_contact_date >= contact_date:
            return False

        self.collection.document(prospect_id).update({"last_contact_date": contact_date})

        logger.info(
            f"Recorded contact for prospect {prospect_id}",
            extra={"extra_fields": {
                "prospect_id": prospect_id,
                "last_contact_date": contact_date.isoformat(),
            }}
        )
        return True


@firestore.transactional
def _insert_unless_pending(transaction, collection, doc_ref, task: FollowUp) -> bool:
    """Insert task only if its prospect has no pending follow-up."""
    pending = (
        collection
        .where("prospect_id", "==", task.prospect_id)
        .where("completed", "==", False)
        .limit(1)
    )
    if list(pending.stream(transaction=transaction)):
        return False

    transaction.set(doc_ref, task.to_firestore())
    return True


class FollowUpRepository:
    """Repository for follow-up task documents."""

    def __init__(self, client: Optional[firestore.Client] = None) -> None:
        self._client = client or FirestoreClient.get_client()
        self._collection_name = settings.firestore.followup_collection

    @property
    def collection(self):
        return self._client.collection(self._collection_name)

    @_wrap_errors("get_follow_up")
    def get_by_id(self, follow_up_id: str) -> Optional[FollowUp]:
        """
        Get a follow-up by its ID.

        Returns:
            FollowUp instance or None if not found.
        """
        doc = self.collection.document(follow_up_id).get()

        if not doc.exists:
            return None

        return _decode(FollowUp, doc, "get_follow_up")

    @_wrap_errors("get_follow_ups_by_prospect")
    def get_by_prospect(self, prospect_id: str) -> List[FollowUp]:
        """All follow-ups for a prospect, completed or not.

        Raises:
            RepositoryError: If any of them cannot be read, since a
                partial list could hide a pending follow-up.
        """
        query = self.collection.where("prospect_id", "==", prospect_id)
        return [_decode(FollowUp, doc, "get_follow_ups_by_prospect") for doc in query.stream()]

    @log_duration("fetch_pending_follow_ups")
    @_wrap_errors("get_pending_follow_ups")
    def get_pending_for_user(self, user_id: str) -> List[FollowUp]:
        """Pending follow-ups across all of a user's prospects."""
        query = (
            self.collection
            .where("user_id", "==", user_id)
            .where("completed", "==", False)
        )
        return _decode_each(FollowUp, query.stream(), self._collection_name)

    @log_duration("create_follow_up")
    @_wrap_errors("create_follow_up")
    def create(self, task: FollowUp) -> FollowUp:
        """
        Create a new follow-up task.

        Returns:
            The stored task with its document ID.
        """
        doc_ref = self.collection.document()
        doc_ref.set(task.to_firestore())

        logger.info(
            f"Created follow-up {doc_ref.id}",
            extra={"extra_fields": {
                "follow_up_id": doc_ref.id,
                "prospect_id": task.prospect_id,
                "due_date": task.due_date.isoformat(),
                "auto_created": task.auto_created,
            }}
        )

        return task.with_id(doc_ref.id)

    @_wrap_errors("create_follow_up_if_no_pending")
    def create_if_no_pending(self, task: FollowUp) -> Optional[FollowUp]:
        """
        Create a follow-up unless the prospect already has a pending one.

        The pending check and the insert run in one transaction, so two
        overlapping calls cannot both create a task.

        Returns:
            The stored task, or None if a pending follow-up exists.
        """
        doc_ref = self.collection.document()
        created = _insert_unless_pending(
            self._client.transaction(),
            self.collection,
            doc_ref,
            task,
        )

        if not created:
            logger.debug(
                f"Prospect {task.prospect_id} already has a pending follow-up",
                extra={"extra_fields": {"prospect_id": task.prospect_id}}
            )
            return None

        logger.info(
            f"Created follow-up {doc_ref.id}",
            extra={"extra_fields": {
                "follow_up_id": doc_ref.id,
                "prospect_id": task.prospect_id,
                "due_date": task.due_date.isoformat(),
                "auto_created": task.auto_created,
            }}
        )
        return task.with_id(doc_ref.id)

    @_wrap_errors("update_follow_up")
    def update(self, task: FollowUp) -> FollowUp:
        """Overwrite a stored follow-up with new field values."""
        self.collection.document(task.doc_id).set(task.to_firestore())

        logger.info(
            f"Updated follow-up {task.doc_id}",
            extra={"extra_fields": {
                "follow_up_id": task.doc_id,
                "completed": task.completed,
            }}
        )
        return task

    @_wrap_errors("delete_follow_up")
    def delete(self, follow_up_id: str) -> None:
        self.collection.document(follow_up_id).delete()

        logger.info(
            f"Deleted follow-up {follow_up_id}",
            extra={"extra_fields": {"follow_up_id": follow_up_id}}
        )


class FollowUpSettingsRepository:
    """Repository for per-user follow-up settings, keyed by user ID."""

    def __init__(self, client: Optional[firestore.Client] = None) -> None:
        self._client = client or FirestoreClient.get_client()
        self._collection_name = settings.firestore.followup_settings_collection

    @property
    def collection(self):
        return self._client.collection(self._collection_name)

    @_wrap_errors("get_follow_up_settings")
    def get(self, user_id: str) -> Optional[FollowUpSettings]:
        doc = self.collection.document(user_id).get()

        if not doc.exists:
            return None

        return _decode(FollowUpSettings, doc, "get_follow_up_settings")

    @_wrap_errors("create_follow_up_settings")
    def create(self, record: FollowUpSettings) -> FollowUpSettings:
        """
        Store a user's first settings record.

        If another request created it first, that record wins and is
        returned instead.
        """
        try:
            self.collection.document(record.user_id).create(record.to_firestore())
        except Conflict:
            logger.info(
                f"Settings for user {record.user_id} already exist",
                extra={"extra_fields": {"user_id": record.user_id}}
            )
            existing = self.get(record.user_id)
            if existing is not None:
                return existing
            raise

        logger.info(
            f"Created follow-up settings for user {record.user_id}",
            extra={"extra_fields": {"user_id": record.user_id}}
        )
        return record

    @_wrap_errors("update_follow_up_settings")
    def update(self, user_id: str, changes: Dict[str, Any]) -> FollowUpSettings:
        """Apply field changes and return the stored record."""
        doc_ref = self.collection.document(user_id)
        doc_ref.set(changes, merge=True)

        logger.info(
            f"Updated follow-up settings for user {user_id}",
            extra={"extra_fields": {
                "user_id": user_id,
                "fields": sorted(changes),
            }}
        )

        return _decode(FollowUpSettings, doc_ref.get(), "update_follow_up_settings")
