"""Tests for Microsoft 365 posture endpoints."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.api.services.graph_client import GraphAPIError
from app.api.services.score_service import ScoreService
from app.models.score import SecureScoreHistory


@pytest.fixture
def graph():
    client = MagicMock()
    recent = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
    client.get_admin_role_members = AsyncMock(return_value=[
        {"role": "Global Administrator", "members": [{"id": "u1"}]},
    ])
    client.get_conditional_access_policies = AsyncMock(return_value=[
        {"id": "p1", "state": "enabled", "conditions": {"signInRiskLevels": ["high"]}},
    ])
    client.get_named_locations = AsyncMock(return_value=[])
    client.get_authentication_methods_policy = AsyncMock(return_value={
        "authenticationMethodConfigurations": [{"id": "Sms", "state": "enabled"}],
    })
    client.get_managed_devices = AsyncMock(return_value=[
        {"deviceName": "LAPTOP-1", "isEncrypted": False},
        {"deviceName": "LAPTOP-2", "isEncrypted": True},
    ])
    client.get_device_compliance_policies = AsyncMock(return_value=[{"id": "c1"}, {"id": "c2"}])
    client.get_secure_scores = AsyncMock(return_value=[{
        "createdDateTime": recent,
        "currentScore": 30,
        "maxScore": 60,
        "controlScores": [{"controlCategory": "Identity", "score": 3, "maxScore": 4}],
    }])
    return client


@pytest.fixture
def base(connected_tenant):
    return f"/api/v1/tenants/{connected_tenant.id}/microsoft365"


@pytest.fixture
def with_graph(graph):
    with patch.object(ScoreService, "get_client", return_value=graph):
        yield graph


def test_admins(client, base, with_graph):
    response = client.get(f"{base}/m365-admins")
    assert response.status_code == 200
    assert response.json() == [{"role": "Global Administrator", "members": [{"id": "u1"}]}]


def test_sign_in_policies(client, base, with_graph):
    data = client.get(f"{base}/sign-in-policies").json()
    assert data["riskySignInPolicyExists"] is True
    assert data["value"][0]["id"] == "p1"


def test_trusted_locations(client, base, with_graph):
    assert client.get(f"{base}/trusted-locations").json() == {"value": [], "trustedLocationExists": False}


def test_phish_resistant_mfa(client, base, with_graph):
    data = client.get(f"{base}/phish-resistant-mfa").json()
    assert [m["id"] for m in data["toDisable"]] == ["Sms"]


def test_unencrypted_devices(client, base, with_graph):
    data = client.get(f"{base}/encrypted-devices").json()
    assert data["count"] == 1
    assert data["devices"][0]["deviceName"] == "LAPTOP-1"


def test_compliance_policies(client, base, with_graph):
    assert client.get(f"{base}/device-compliance-policies").json()["count"] == 2


def test_secure_scores(client, base, with_graph):
    data = client.get(f"{base}/secure-scores").json()
    assert data[0]["percentage"] == 50


def test_category_scores(client, base, with_graph):
    data = client.get(f"{base}/secure-scores/identity").json()
    assert data[0]["percentage"] == 75


def test_unknown_category(client, base, with_graph):
    assert client.get(f"{base}/secure-scores/network").status_code == 422


def test_missing_connection(client, tenant):
    response = client.get(f"/api/v1/tenants/{tenant.id}/microsoft365/m365-admins")
    assert response.status_code == 404


def test_graph_failure(client, base, graph):
    graph.get_named_locations = AsyncMock(side_effect=GraphAPIError(503, "/identity/conditionalAccess/namedLocations"))
    with patch.object(ScoreService, "get_client", return_value=graph):
        response = client.get(f"{base}/trusted-locations")
    assert response.status_code == 502


def test_secure_score_history(client, db_session, connected_tenant, base):
    for month in range(1, 5):
        db_session.add(SecureScoreHistory(
            tenant_id=connected_tenant.id,
            score=10 * month,
            score_percent=10 * month,
            max_score=100,
            recorded_at=datetime(2025, month, 1),
            report_quarter=(month + 2) // 3,
            report_year=2025,
        ))
    db_session.commit()

    response = client.get(f"{base}/secure-score-history", params={"limit": 2})
    assert response.status_code == 200
    data = response.json()
    assert [r["scorePercent"] for r in data] == [40, 30]
    assert data[0]["recordedAt"].startswith("2025-04-01")
    assert data[0]["reportQuarter"] == 2


def test_other_tenant_forbidden(as_user, analyst_user, make_tenant):
    other = make_tenant(name="Other Co")
    response = as_user(analyst_user).get(f"/api/v1/tenants/{other.id}/microsoft365/secure-scores")
    assert response.status_code == 403
