"""
Tests for alert classification.
"""

from datetime import datetime, timedelta, timezone

import pytest

from lead_followup.infrastructure.firestore import FollowUp, FollowUpSettings, Prospect
from lead_followup.services.classification import (
    Alert,
    AlertPriority,
    AlertType,
    NEW_PROSPECT_MESSAGE,
    classify,
    sort_alerts,
)


UTC = timezone.utc
NOW = datetime(2024, 3, 20, 12, 0, tzinfo=UTC)


def _prospect(doc_id="p1", days_ago=None, name="Grace Hopper"):
    last_contact = NOW - timedelta(days=days_ago) if days_ago is not None else None
    return Prospect(doc_id=doc_id, user_id="user-1", name=name, last_contact_date=last_contact)


def _follow_up(completed):
    return FollowUp(
        doc_id="f1",
        prospect_id="p1",
        user_id="user-1",
        due_date=NOW,
        completed=completed,
    )


@pytest.fixture
def settings():
    return FollowUpSettings(user_id="user-1", standard_follow_up_days=4)


class TestClassify:
    """Threshold grid for standard_follow_up_days = 4."""

    @pytest.mark.parametrize("days,expected_type,expected_priority", [
        (11, AlertType.OVERDUE_FOLLOW_UP, AlertPriority.HIGH),
        (10, AlertType.OVERDUE_FOLLOW_UP, AlertPriority.MEDIUM),
        (9, AlertType.OVERDUE_FOLLOW_UP, AlertPriority.MEDIUM),
        (7, AlertType.OVERDUE_FOLLOW_UP, AlertPriority.MEDIUM),
        (6, AlertType.FOLLOW_UP_NEEDED, AlertPriority.LOW),
        (4, AlertType.FOLLOW_UP_NEEDED, AlertPriority.LOW),
    ])
    def test_thresholds(self, settings, days, expected_type, expected_priority):
        alert = classify(_prospect(days_ago=days), settings, [], now=NOW, tz=UTC)

        assert alert.type == expected_type
        assert alert.priority == expected_priority
        assert alert.days_since_last_contact == days

    def test_inside_window_has_no_alert(self, settings):
        assert classify(_prospect(days_ago=3), settings, [], now=NOW, tz=UTC) is None

    def test_future_contact_has_no_alert(self, settings):
        assert classify(_prospect(days_ago=-2), settings, [], now=NOW, tz=UTC) is None

    def test_pending_follow_up_suppresses_alert(self, settings):
        prospect = _prospect(days_ago=30)
        assert classify(prospect, settings, [_follow_up(completed=False)], now=NOW, tz=UTC) is None

    def test_pending_follow_up_suppresses_new_prospect(self, settings):
        assert classify(_prospect(), settings, [_follow_up(completed=False)], now=NOW, tz=UTC) is None

    def test_completed_follow_ups_do_not_suppress(self, settings):
        alert = classify(_prospect(days_ago=30), settings, [_follow_up(completed=True)], now=NOW, tz=UTC)
        assert alert.priority == AlertPriority.HIGH

    def test_never_contacted_is_new_prospect(self, settings):
        alert = classify(_prospect(), settings, [], now=NOW, tz=UTC)

        assert alert.type == AlertType.NEW_PROSPECT
        assert alert.priority == AlertPriority.MEDIUM
        assert alert.days_since_last_contact == 0
        assert alert.message == NEW_PROSPECT_MESSAGE

    def test_messages(self, settings):
        high = classify(_prospect(days_ago=12), settings, [], now=NOW, tz=UTC)
        medium = classify(_prospect(days_ago=8), settings, [], now=NOW, tz=UTC)
        low = classify(_prospect(days_ago=5), settings, [], now=NOW, tz=UTC)

        assert high.message == "Urgent: No contact for 12 days - immediate follow-up needed"
        assert medium.message == "Overdue: Follow-up needed (8 days since last contact)"
        assert low.message == "Follow-up recommended (5 days since last contact)"

    def test_window_comes_from_user_settings(self):
        relaxed = FollowUpSettings(user_id="user-1", standard_follow_up_days=14)
        assert classify(_prospect(days_ago=10), relaxed, [], now=NOW, tz=UTC) is None

    def test_counts_calendar_days(self, settings):
        # 3 days and 13 hours ago is 4 calendar days ago
        prospect = Prospect(
            doc_id="p1",
            user_id="user-1",
            last_contact_date=datetime(2024, 3, 16, 23, 0, tzinfo=UTC),
        )
        alert = classify(prospect, settings, [], now=NOW, tz=UTC)
        assert alert.days_since_last_contact == 4


class TestSortAlerts:

    def _alert(self, name, priority):
        return Alert(
            type=AlertType.FOLLOW_UP_NEEDED,
            priority=priority,
            prospect=_prospect(doc_id=name, name=name),
            message="",
            days_since_last_contact=5,
        )

    def test_priority_descending_and_stable(self):
        alerts = [
            self._alert("a", AlertPriority.LOW),
            self._alert("b", AlertPriority.HIGH),
            self._alert("c", AlertPriority.MEDIUM),
            self._alert("d", AlertPriority.HIGH),
            self._alert("e", AlertPriority.LOW),
        ]

        ordered = [a.prospect.name for a in sort_alerts(alerts)]

        assert ordered == ["b", "d", "c", "a", "e"]

    def test_alert_json_shape(self):
        data = self._alert("a", AlertPriority.LOW).to_dict()

        assert data["type"] == "follow_up_needed"
        assert data["priority"] == "low"
        assert data["daysSinceLastContact"] == 5
        assert data["prospect"]["id"] == "a"
        assert "dueDate" not in data
