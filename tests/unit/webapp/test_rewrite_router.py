# =============================================================================
# Rewrite Router Unit Tests
# =============================================================================
# Tests for the start/advance/reset/rollback/log endpoints and their error
# mapping. The rewrite and activity services are mocked.
# =============================================================================

from unittest.mock import MagicMock, patch

import pytest
from starlette.testclient import TestClient

from libs.jobs import (
    JobStateMissingError,
    RollbackRefusedError,
    StuckCursorError,
)
from libs.models import ActionResponse, JobResponse, JobStage, LogView


@pytest.fixture
def mock_rewrite_service():
    with patch("app.routers.rewrite.get_rewrite_service") as mock_factory:
        mock_service = MagicMock()
        mock_factory.return_value = mock_service
        yield mock_service


@pytest.fixture
def mock_activity_service():
    with patch("app.routers.rewrite.get_activity_service") as mock_factory:
        mock_service = MagicMock()
        mock_factory.return_value = mock_service
        yield mock_service


@pytest.fixture
def auth_override():
    from app.auth.dependencies import get_current_user
    from app.auth.providers import AuthenticatedUser
    from app.main import app

    app.dependency_overrides[get_current_user] = lambda: AuthenticatedUser(username="testuser")
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client(auth_override):
    from app.main import app

    return TestClient(app)


def test_start_job(client, mock_rewrite_service, mock_activity_service):
    mock_rewrite_service.start_job.return_value = JobResponse(
        message="Job started. Processing...",
        stage=JobStage.STARTED,
        collection="posts",
    )

    response = client.post("/rewrite/start", json={"dry_run": True})

    assert response.status_code == 200
    payload = response.json()
    assert payload["message"] == "Job started. Processing..."
    assert payload["stage"] == "started"
    assert payload["continue"] is True
    mock_rewrite_service.start_job.assert_called_once_with("testuser", dry_run=True)
    activity = mock_activity_service.log_activity.call_args.kwargs
    assert activity["action"] == "start_rewrite"
    assert activity["details"] == {"dry_run": True}


def test_start_job_defaults_to_live(client, mock_rewrite_service, mock_activity_service):
    mock_rewrite_service.start_job.return_value = JobResponse(
        message="Job started. Processing...", stage=JobStage.STARTED
    )

    client.post("/rewrite/start", json={})

    mock_rewrite_service.start_job.assert_called_once_with("testuser", dry_run=False)


def test_advance_progress(client, mock_rewrite_service, mock_activity_service):
    mock_rewrite_service.advance.return_value = JobResponse(
        message="Processing posts... 50 rows processed.",
        stage=JobStage.PROGRESS,
        collection="posts",
        processed=50,
        total=120,
    )

    response = client.post("/rewrite/advance")

    assert response.status_code == 200
    payload = response.json()
    assert payload["processed"] == 50
    assert payload["total"] == 120
    assert payload["continue"] is True
    mock_activity_service.log_activity.assert_not_called()


def test_advance_complete_records_activity(client, mock_rewrite_service, mock_activity_service):
    mock_rewrite_service.advance.return_value = JobResponse(
        message="Reference replacement complete! Total replacements: 3.",
        stage=JobStage.COMPLETE,
        continue_=False,
    )

    response = client.post("/rewrite/advance")

    assert response.json()["continue"] is False
    activity = mock_activity_service.log_activity.call_args.kwargs
    assert activity["action"] == "complete_rewrite"


def test_advance_missing_state_is_404(client, mock_rewrite_service, mock_activity_service):
    mock_rewrite_service.advance.side_effect = JobStateMissingError(
        "Job state not found. Please start a new job."
    )

    response = client.post("/rewrite/advance")

    assert response.status_code == 404
    detail = response.json()["detail"]
    assert detail["message"] == "Job state not found. Please start a new job."
    assert detail["non_retryable"] is True


def test_advance_stuck_is_409_with_debug(client, mock_rewrite_service, mock_activity_service):
    mock_rewrite_service.advance.side_effect = StuckCursorError(
        "Cursor did not advance; possible query issue. Stopping to prevent infinite loop.",
        debug={"collection": "postmeta", "cursor": 40, "run_id": "r1"},
    )

    response = client.post("/rewrite/advance")

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["non_retryable"] is True
    assert detail["debug"]["cursor"] == 40
    activity = mock_activity_service.log_activity.call_args.kwargs
    assert activity["action"] == "abort_rewrite"
    assert activity["resource_id"] == "r1"


def test_advance_unexpected_error_is_retryable_500(
    client, mock_rewrite_service, mock_activity_service
):
    mock_rewrite_service.advance.side_effect = RuntimeError("socket closed")

    response = client.post("/rewrite/advance")

    assert response.status_code == 500
    detail = response.json()["detail"]
    assert detail["non_retryable"] is False
    assert "socket closed" in detail["message"]


def test_activity_failure_does_not_fail_request(
    client, mock_rewrite_service, mock_activity_service
):
    mock_rewrite_service.reset.return_value = ActionResponse(
        message="Job reset successfully.", details={"run_id": "r1"}
    )
    mock_activity_service.log_activity.side_effect = RuntimeError("mongo down")

    response = client.post("/rewrite/reset")

    assert response.status_code == 200
    assert response.json()["message"] == "Job reset successfully."


def test_rollback_refused_is_409(client, mock_rewrite_service, mock_activity_service):
    mock_rewrite_service.rollback.side_effect = RollbackRefusedError(
        "The last completed run was a dry run; nothing was changed."
    )

    response = client.post("/rewrite/rollback")

    assert response.status_code == 409
    mock_activity_service.log_activity.assert_not_called()


def test_rollback(client, mock_rewrite_service, mock_activity_service):
    mock_rewrite_service.rollback.return_value = ActionResponse(
        message="Rollback complete: 4 fields restored, 0 failed.",
        details={"run_id": "r1", "restored": 4, "failed": 0},
    )

    response = client.post("/rewrite/rollback")

    assert response.status_code == 200
    assert response.json()["details"]["restored"] == 4
    activity = mock_activity_service.log_activity.call_args.kwargs
    assert activity["action"] == "rollback_rewrite"
    assert activity["resource_id"] == "r1"


def test_view_log_empty(client, mock_rewrite_service):
    mock_rewrite_service.view_log.return_value = LogView()

    response = client.get("/rewrite/log")

    assert response.status_code == 200
    assert response.json() == {"run": None, "summary": None, "log": []}


def test_requires_authentication(mock_rewrite_service):
    from app.main import app

    response = TestClient(app).post("/rewrite/advance")

    assert response.status_code == 401
    mock_rewrite_service.advance.assert_not_called()
