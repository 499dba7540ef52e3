"""
Tests for Alert Service.

Tests alert aggregation, the dashboard summary and task auto-creation.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from lead_followup.core.exceptions import RepositoryError
from lead_followup.infrastructure.firestore import FollowUp, FollowUpRepository, Prospect
from lead_followup.infrastructure.metrics import get_metrics
from lead_followup.services.alerts import AlertService, NotificationSummary
from lead_followup.services.classification import AlertPriority, AlertType
from lead_followup.services.settings import SettingsService

from tests.conftest import NOW, InMemoryFollowUpRepository


UTC = timezone.utc


def _prospect(doc_id, days_ago=None, user_id="user-1"):
    last_contact = NOW - timedelta(days=days_ago) if days_ago is not None else None
    return Prospect(
        doc_id=doc_id,
        user_id=user_id,
        name=f"Prospect {doc_id}",
        last_contact_date=last_contact,
    )


class TestAlertService:
    """Tests for AlertService."""

    @pytest.fixture
    def service(self, prospect_repo, followup_repo, settings_repo):
        return AlertService(
            prospect_repository=prospect_repo,
            followup_repository=followup_repo,
            settings_service=SettingsService(settings_repo),
            clock=lambda: NOW,
            tz=UTC,
        )

    @pytest.fixture
    def populated(self, prospect_repo, followup_repo):
        prospect_repo.add(_prospect("new"))
        prospect_repo.add(_prospect("old", days_ago=12))
        prospect_repo.add(_prospect("mid", days_ago=8))
        prospect_repo.add(_prospect("recent", days_ago=2))
        prospect_repo.add(_prospect("busy", days_ago=30))
        prospect_repo.add(_prospect("other-user", days_ago=30, user_id="user-2"))
        followup_repo.create(FollowUp(
            doc_id="",
            prospect_id="busy",
            user_id="user-1",
            due_date=NOW + timedelta(days=2),
        ))

    def test_alerts_sorted_by_priority(self, service, populated):
        alerts = service.get_alerts("user-1")

        assert [a.prospect.doc_id for a in alerts] == ["old", "new", "mid"]
        assert [a.priority for a in alerts] == [
            AlertPriority.HIGH,
            AlertPriority.MEDIUM,
            AlertPriority.MEDIUM,
        ]

    def test_first_read_materializes_settings(self, service, settings_repo):
        service.get_alerts("user-1")

        assert "user-1" in settings_repo.records
        assert settings_repo.records["user-1"].standard_follow_up_days == 4

    def test_empty_user_has_no_alerts(self, service):
        assert service.get_alerts("nobody") == []

    def test_records_alert_metrics(self, service, populated):
        service.get_alerts("user-1")

        counter = get_metrics().alerts_generated_total
        assert counter.value(type="overdue_follow_up", priority="high") == 1
        assert counter.value(type="new_prospect", priority="medium") == 1

    def test_prospect_with_unreadable_follow_ups_is_skipped(
        self,
        prospect_repo,
        settings_repo,
        populated,
    ):
        followup_repo = MagicMock(wraps=InMemoryFollowUpRepository())

        def get_by_prospect(prospect_id):
            if prospect_id == "old":
                raise RepositoryError("get_followups_by_prospect", "deadline exceeded")
            return []

        followup_repo.get_by_prospect.side_effect = get_by_prospect
        service = AlertService(
            prospect_repository=prospect_repo,
            followup_repository=followup_repo,
            settings_service=SettingsService(settings_repo),
            clock=lambda: NOW,
            tz=UTC,
        )

        ids = [a.prospect.doc_id for a in service.get_alerts("user-1")]

        assert "old" not in ids
        assert "mid" in ids

    def test_corrupt_follow_up_document_skips_only_its_prospect(
        self,
        prospect_repo,
        settings_repo,
        populated,
    ):
        corrupt = MagicMock(id="fu-bad")
        corrupt.to_dict.return_value = {"prospect_id": "old", "type": "sms"}

        def where(field, op, value):
            query = MagicMock()
            query.stream.return_value = [corrupt] if value == "old" else []
            return query

        firestore_client = MagicMock()
        firestore_client.collection.return_value.where.side_effect = where
        service = AlertService(
            prospect_repository=prospect_repo,
            followup_repository=FollowUpRepository(client=firestore_client),
            settings_service=SettingsService(settings_repo),
            clock=lambda: NOW,
            tz=UTC,
        )

        ids = [a.prospect.doc_id for a in service.get_alerts("user-1")]

        assert "old" not in ids
        assert sorted(ids) == ["busy", "mid", "new"]

    def test_prospect_list_failure_propagates(self, settings_repo, followup_repo):
        prospect_repo = MagicMock()
        prospect_repo.get_by_user.side_effect = RepositoryError("get_prospects_by_user", "unavailable")
        service = AlertService(
            prospect_repository=prospect_repo,
            followup_repository=followup_repo,
            settings_service=SettingsService(settings_repo),
        )

        with pytest.raises(RepositoryError):
            service.get_alerts("user-1")


class TestNotificationSummary:

    @pytest.fixture
    def service(self, prospect_repo, followup_repo, settings_repo):
        return AlertService(
            prospect_repository=prospect_repo,
            followup_repository=followup_repo,
            settings_service=SettingsService(settings_repo),
            clock=lambda: NOW,
            tz=UTC,
        )

    def test_counts(self, service, prospect_repo):
        prospect_repo.add(_prospect("new"))
        prospect_repo.add(_prospect("old", days_ago=12))
        prospect_repo.add(_prospect("mid", days_ago=8))
        prospect_repo.add(_prospect("low", days_ago=5))

        summary = service.get_notification_summary("user-1").to_dict()

        assert summary["totalAlerts"] == 4
        assert summary["highPriorityCount"] == 1
        assert summary["mediumPriorityCount"] == 2
        assert summary["lowPriorityCount"] == 1
        assert summary["newProspectsCount"] == 1
        assert summary["overdueFollowUpsCount"] == 2
        assert summary["alerts"][0]["prospect"]["id"] == "old"

    def test_alerts_capped_at_ten(self, service, prospect_repo):
        for i in range(15):
            prospect_repo.add(_prospect(f"p{i}"))

        summary = service.get_notification_summary("user-1")

        assert summary.total_alerts == 15
        assert len(summary.alerts) == 10

    def test_empty_summary(self):
        assert NotificationSummary().to_dict() == {
            "totalAlerts": 0,
            "highPriorityCount": 0,
            "mediumPriorityCount": 0,
            "lowPriorityCount": 0,
            "newProspectsCount": 0,
            "overdueFollowUpsCount": 0,
            "alerts": [],
        }


class TestAutoCreateFollowUpTasks:

    @pytest.fixture
    def service(self, prospect_repo, followup_repo, settings_repo):
        prospect_repo.add(_prospect("new"))
        prospect_repo.add(_prospect("old", days_ago=12))
        prospect_repo.add(_prospect("low", days_ago=5))
        return AlertService(
            prospect_repository=prospect_repo,
            followup_repository=followup_repo,
            settings_service=SettingsService(settings_repo),
            clock=lambda: NOW,
            tz=UTC,
        )

    def test_creates_tasks_for_follow_up_alerts_only(self, service, followup_repo):
        created = service.auto_create_follow_up_tasks("user-1")

        assert created == 2
        prospects = sorted(f.prospect_id for f in followup_repo.follow_ups.values())
        assert prospects == ["low", "old"]

    def test_task_fields(self, service, followup_repo):
        service.auto_create_follow_up_tasks("user-1")

        task = followup_repo.get_by_prospect("old")[0]
        assert task.title == "Follow up with Prospect old"
        assert task.notes == "Urgent: No contact for 12 days - immediate follow-up needed"
        assert task.priority == "high"
        assert task.due_date == datetime(2024, 3, 21, 12, 0, tzinfo=UTC)
        assert task.auto_created is True
        assert task.completed is False
        assert task.user_id == "user-1"

    def test_second_run_creates_nothing(self, service):
        assert service.auto_create_follow_up_tasks("user-1") == 2
        assert service.auto_create_follow_up_tasks("user-1") == 0

    def test_created_tasks_clear_their_alerts(self, service):
        service.auto_create_follow_up_tasks("user-1")

        alerts = service.get_alerts("user-1")

        assert [a.type for a in alerts] == [AlertType.NEW_PROSPECT]

    def test_counts_auto_created_metric(self, service):
        service.auto_create_follow_up_tasks("user-1")

        assert get_metrics().followups_auto_created_total.value() == 2

    def test_task_lost_to_concurrent_insert_is_not_counted(self, service, followup_repo):
        followup_repo.create_if_no_pending = MagicMock(return_value=None)

        assert service.auto_create_follow_up_tasks("user-1") == 0
