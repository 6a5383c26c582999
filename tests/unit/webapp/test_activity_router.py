from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from app.auth.dependencies import get_current_user
from app.main import app
from app.services.activity_service import ActivityLogEntry

client = TestClient(app)


@pytest.fixture
def mock_auth():
    mock_user = MagicMock(username="test_user", operator_id="test_user")
    app.dependency_overrides[get_current_user] = lambda: mock_user
    yield mock_user
    app.dependency_overrides = {}


@pytest.fixture
def mock_activity_service():
    with patch("app.routers.activity.get_activity_service") as mock:
        service = MagicMock()
        mock.return_value = service
        yield service


def test_list_activity(mock_auth, mock_activity_service):
    """Test listing activity as JSON."""
    mock_entry = ActivityLogEntry(
        id="60d5ecb8b5c9c62b3c7c3b5a",
        user="test_user",
        action="start_rewrite",
        resource_type="rewrite_job",
        resource_id="test_user",
        details={"dry_run": False},
        timestamp=datetime(2023, 1, 1, 12, 0, 0),
        ip_address="127.0.0.1",
    )
    mock_activity_service.get_recent_activity.return_value = ([mock_entry], 1)

    response = client.get("/activity/")

    assert response.status_code == 200
    data = response.json()
    assert data["count_returned"] == 1
    assert data["items"][0]["action"] == "start_rewrite"
    assert data["items"][0]["timestamp"] == "2023-01-01T12:00:00"


def test_list_activity_filters(mock_auth, mock_activity_service):
    """Test filters are passed through to the service."""
    mock_activity_service.get_recent_activity.return_value = ([], 0)

    response = client.get("/activity/?user=admin&action=rollback_rewrite&offset=5&limit=10")

    assert response.status_code == 200
    mock_activity_service.get_recent_activity.assert_called_once_with(
        user="admin", action="rollback_rewrite", resource_id=None, offset=5, limit=10
    )
    assert response.json()["filters"] == {
        "user": "admin",
        "action": "rollback_rewrite",
        "run_id": None,
    }


def test_list_activity_for_run(mock_auth, mock_activity_service):
    """A run_id narrows the trail to that run's actions."""
    mock_activity_service.get_recent_activity.return_value = ([], 0)

    response = client.get("/activity/?run_id=abc123")

    assert response.status_code == 200
    mock_activity_service.get_recent_activity.assert_called_once_with(
        user=None, action=None, resource_id="abc123", offset=0, limit=50
    )


def test_list_activity_limit_validation(mock_auth, mock_activity_service):
    response = client.get("/activity/?limit=500")

    assert response.status_code == 422
