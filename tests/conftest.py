"""
Test Configuration and Fixtures.

Provides shared fixtures for all tests.
"""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest
from flask import Flask
from flask.testing import FlaskClient

from lead_followup.app import create_app
from lead_followup.core.exceptions import ProspectNotFoundError
from lead_followup.infrastructure.firestore import (
    FollowUp,
    FollowUpSettings,
    Prospect,
)
from lead_followup.infrastructure.metrics import reset_metrics


NOW = datetime(2024, 3, 20, 12, 0, 0, tzinfo=timezone.utc)


class InMemoryProspectRepository:
    def __init__(self, prospects: Optional[List[Prospect]] = None) -> None:
        self.prospects: Dict[str, Prospect] = {p.doc_id: p for p in prospects or []}

    def add(self, prospect: Prospect) -> Prospect:
        self.prospects[prospect.doc_id] = prospect
        return prospect

    def get_by_id(self, prospect_id: str) -> Prospect:
        if prospect_id not in self.prospects:
            raise ProspectNotFoundError(prospect_id)
        return self.prospects[prospect_id]

    def get_by_user(self, user_id: str) -> List[Prospect]:
        return [p for p in self.prospects.values() if p.user_id == user_id]


class InMemoryFollowUpRepository:
    def __init__(self) -> None:
        self.follow_ups: Dict[str, FollowUp] = {}
        self._next_id = 1

    def _new_id(self) -> str:
        doc_id = f"fu-{self._next_id}"
        self._next_id += 1
        return doc_id

    def get_by_id(self, follow_up_id: str) -> Optional[FollowUp]:
        return self.follow_ups.get(follow_up_id)

    def get_by_prospect(self, prospect_id: str) -> List[FollowUp]:
        return [f for f in self.follow_ups.values() if f.prospect_id == prospect_id]

    def get_pending_for_user(self, user_id: str) -> List[FollowUp]:
        return [
            f for f in self.follow_ups.values()
            if f.user_id == user_id and not f.completed
        ]

    def create(self, task: FollowUp) -> FollowUp:
        stored = task.with_id(self._new_id())
        self.follow_ups[stored.doc_id] = stored
        return stored

    def create_if_no_pending(self, task: FollowUp) -> Optional[FollowUp]:
        if any(not f.completed for f in self.get_by_prospect(task.prospect_id)):
            return None
        return self.create(task)

    def update(self, task: FollowUp) -> FollowUp:
        self.follow_ups[task.doc_id] = task
        return task

    def delete(self, follow_up_id: str) -> None:
        self.follow_ups.pop(follow_up_id, None)


class InMemorySettingsRepository:
    def __init__(self) -> None:
        self.records: Dict[str, FollowUpSettings] = {}
        self.create_calls = 0

    def get(self, user_id: str) -> Optional[FollowUpSettings]:
        return self.records.get(user_id)

    def create(self, record: FollowUpSettings) -> FollowUpSettings:
        self.create_calls += 1
        return self.records.setdefault(record.user_id, record)

    def update(self, user_id: str, changes: dict) -> FollowUpSettings:
        self.records[user_id] = replace(self.records[user_id], **changes)
        return self.records[user_id]


@pytest.fixture(autouse=True)
def clean_process_state():
    """Metrics are process-wide."""
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture
def app() -> Flask:
    """Create test Flask application."""
    return create_app({"TESTING": True, "SECRET_KEY": "test-secret"})


@pytest.fixture
def client(app: Flask) -> FlaskClient:
    """Create test client."""
    return app.test_client()


@pytest.fixture
def auth_client(client: FlaskClient) -> FlaskClient:
    """Test client logged in as user-1."""
    with client.session_transaction() as session:
        session["user_id"] = "user-1"
    return client


@pytest.fixture
def prospect_repo() -> InMemoryProspectRepository:
    return InMemoryProspectRepository()


@pytest.fixture
def followup_repo() -> InMemoryFollowUpRepository:
    return InMemoryFollowUpRepository()


@pytest.fixture
def settings_repo() -> InMemorySettingsRepository:
    return InMemorySettingsRepository()


@pytest.fixture
def sample_settings() -> FollowUpSettings:
    return FollowUpSettings(user_id="user-1", standard_follow_up_days=4)


@pytest.fixture
def sample_prospect() -> Prospect:
    return Prospect(
        doc_id="prospect-1",
        user_id="user-1",
        name="Ada Lovelace",
        email="ada@example.com",
        company="Analytical Engines",
        last_contact_date=datetime(2024, 3, 10, 12, 0, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def sample_follow_up() -> FollowUp:
    return FollowUp(
        doc_id="fu-100",
        prospect_id="prospect-1",
        user_id="user-1",
        due_date=datetime(2024, 3, 21, 12, 0, 0, tzinfo=timezone.utc),
        notes="Send pricing",
    )
