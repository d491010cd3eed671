"""Tests for health endpoints."""


def test_health_check(client):
    """Test basic health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["version"] == "0.1.0"


def test_detailed_health_check(client):
    """Detailed health reports the scoring and email setup."""
    response = client.get("/health/detailed")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    components = data["components"]
    assert components["database"] == "healthy"
    # The test environment sets SCORES_CRON_SECRET and disables the scheduler
    assert components["cron_secret_configured"] is True
    assert components["scheduler"] == "not_running"
    assert components["email_configured"] is False
