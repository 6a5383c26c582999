# =============================================================================
# Health Router Unit Tests
# =============================================================================

from unittest.mock import MagicMock, patch

from starlette.testclient import TestClient

from app import __version__
from app.main import app

client = TestClient(app)


def test_health():
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "version": __version__}


def test_ready_when_mongodb_reachable():
    with patch("app.routers.health.get_rewrite_service") as mock_factory:
        mock_factory.return_value = MagicMock()
        response = client.get("/ready")

    assert response.json() == {"status": "ready", "services": {"mongodb": "ok"}}


def test_degraded_when_mongodb_unreachable():
    with patch("app.routers.health.get_rewrite_service") as mock_factory:
        mock_factory.return_value.ping.side_effect = RuntimeError("timeout")
        response = client.get("/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "degraded", "services": {"mongodb": "unavailable"}}
