"""Tests for health endpoints."""
from tests.constants import URLs


def test_health_check_returns_ok(client):
    """Liveness endpoint returns 200 with status ok."""
    response = client.get(URLs.HEALTH)

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
