"""Integration tests for activity API endpoints."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from src.api.deps import get_activity_service


@pytest.fixture
def activity_service(override) -> AsyncMock:
    """Replace the activity service with an async mock."""
    service = AsyncMock()
    override(get_activity_service, service)
    return service


class TestCreateActivity:
    """Tests for POST /api/v1/activities."""

    def test_logs_call(self, client: TestClient, activity_service: AsyncMock) -> None:
        activity_service.create.return_value = {
            "id": "a-1",
            "contact_id": "c-1",
            "type": "CALL",
            "outcome": "DIAL",
            "count": 1,
            "date": "2024-03-07T15:00:00+00:00",
        }

        response = client.post("/api/v1/activities", json={"contact_id": "c-1", "type": "CALL", "outcome": "DIAL"})

        assert response.status_code == 201
        assert response.json()["outcome"] == "DIAL"
        data = activity_service.create.call_args[0][0]
        assert data.count == 1
        assert data.voicemail is False

    def test_unknown_type_rejected(self, client: TestClient, activity_service: AsyncMock) -> None:
        response = client.post("/api/v1/activities", json={"type": "FAX"})

        assert response.status_code == 422
        activity_service.create.assert_not_awaited()

    def test_negative_count_rejected(self, client: TestClient, activity_service: AsyncMock) -> None:
        response = client.post("/api/v1/activities", json={"type": "DIAL", "count": -1})

        assert response.status_code == 422


class TestListActivities:
    """Tests for GET /api/v1/activities."""

    def test_recent_for_contact(self, client: TestClient, activity_service: AsyncMock) -> None:
        activity_service.recent.return_value = [{"id": "a-1", "type": "NOTE"}]

        response = client.get("/api/v1/activities", params={"contactId": "c-1", "limit": 5})

        assert response.status_code == 200
        assert response.json()[0]["id"] == "a-1"
        activity_service.recent.assert_awaited_once_with(contact_id="c-1", limit=5)
