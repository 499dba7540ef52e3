"""
Tests for Firestore models.
"""

from datetime import datetime, timezone

import pytest

from lead_followup.infrastructure.firestore import (
    FollowUp,
    FollowUpSettings,
    FollowUpType,
    Prospect,
)


UTC = timezone.utc


class TestFollowUpSettings:

    def test_missing_fields_take_defaults(self):
        record = FollowUpSettings.from_firestore("user-1", {"standard_follow_up_days": 10})

        assert record.user_id == "user-1"
        assert record.standard_follow_up_days == 10
        assert record.initial_response_days == 2
        assert record.notify_daily_digest is True

    def test_to_firestore_has_no_user_id(self):
        data = FollowUpSettings(user_id="user-1").to_firestore()

        assert "user_id" not in data
        assert data["standard_follow_up_days"] == 4


class TestFollowUp:

    def test_from_firestore_parses_iso_strings(self):
        follow_up = FollowUp.from_firestore("fu-1", {
            "prospect_id": 42,
            "user_id": "user-1",
            "due_date": "2024-03-21T12:00:00Z",
            "type": "meeting",
            "completed": False,
        })

        assert follow_up.prospect_id == "42"
        assert follow_up.due_date == datetime(2024, 3, 21, 12, tzinfo=UTC)
        assert follow_up.type == FollowUpType.MEETING
        assert follow_up.is_pending

    def test_missing_due_date_is_unreadable(self):
        with pytest.raises(ValueError):
            FollowUp.from_firestore("fu-1", {"prospect_id": "p-1", "user_id": "user-1"})

    def test_unknown_type_is_unreadable(self):
        with pytest.raises(ValueError):
            FollowUp.from_firestore("fu-1", {
                "prospect_id": "p-1",
                "due_date": "2024-03-21T12:00:00Z",
                "type": "sms",
            })

    def test_to_firestore_omits_empty_title_and_priority(self):
        follow_up = FollowUp(
            doc_id="",
            prospect_id="p-1",
            user_id="user-1",
            due_date=datetime(2024, 3, 21, tzinfo=UTC),
        )

        data = follow_up.to_firestore()

        assert "title" not in data
        assert "priority" not in data
        assert data["type"] == "email"

    def test_to_dict(self):
        follow_up = FollowUp(
            doc_id="fu-1",
            prospect_id="p-1",
            user_id="user-1",
            due_date=datetime(2024, 3, 21, 12, tzinfo=UTC),
            title="Follow up with Ada",
            priority="high",
            auto_created=True,
        )

        data = follow_up.to_dict()

        assert data["dueDate"] == "2024-03-21T12:00:00+00:00"
        assert data["completedDate"] is None
        assert data["autoCreated"] is True


class TestProspect:

    def test_naive_last_contact_is_utc(self):
        prospect = Prospect.from_firestore("p-1", {
            "user_id": 7,
            "name": "Ada",
            "last_contact_date": datetime(2024, 3, 10, 12),
        })

        assert prospect.user_id == "7"
        assert prospect.last_contact_date.tzinfo == UTC
        assert prospect.to_dict()["lastContactDate"] == "2024-03-10T12:00:00+00:00"

    def test_never_contacted(self):
        prospect = Prospect.from_firestore("p-1", {"user_id": "u"})

        assert prospect.last_contact_date is None
        assert prospect.status == "active"
