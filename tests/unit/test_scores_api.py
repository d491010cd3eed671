"""Tests for maturity score endpoints."""

from datetime import date, datetime
from unittest.mock import AsyncMock, patch

from app.api.services.graph_client import GraphAPIError
from app.api.services.maturity import shift_months
from app.api.services.score_service import ScoreService
from app.models.audit import AuditLog
from app.models.score import TenantScore

CRON_SECRET = "test-cron-secret"


def _add_score(db_session, tenant, day, pct, secure_pct):
    db_session.add(TenantScore(
        tenant_id=tenant.id,
        score_date=day,
        total_score=pct,
        max_score=100,
        total_score_pct=pct,
        microsoft_secure_score_pct=secure_pct,
        last_updated=datetime.combine(day, datetime.min.time()),
    ))
    db_session.commit()


class TestRunDaily:
    def test_requires_secret(self, anon_client):
        assert anon_client.post("/api/v1/scores/run-daily").status_code == 403

    def test_rejects_wrong_secret(self, anon_client):
        response = anon_client.post("/api/v1/scores/run-daily", headers={"x-cron-secret": "guess"})
        assert response.status_code == 403

    def test_runs_with_secret(self, anon_client):
        results = [{"tenantId": "t1", "totalScore": 50}]
        with patch("app.api.routes.scores.run_daily_scores", AsyncMock(return_value=results)) as run:
            response = anon_client.post("/api/v1/scores/run-daily", headers={"x-cron-secret": CRON_SECRET})

        assert response.status_code == 200
        assert response.json() == {"results": results}
        run.assert_awaited_once()


class TestCalculate:
    def test_stores_and_audits(self, client, db_session, connected_tenant):
        result = {"tenantId": connected_tenant.id, "totalScore": 120, "maxScore": 280}
        with patch.object(ScoreService, "save_tenant_daily_scores", AsyncMock(return_value=result)):
            response = client.post(f"/api/v1/tenants/{connected_tenant.id}/scores")

        assert response.status_code == 200
        assert response.json() == result
        assert db_session.query(AuditLog).filter(AuditLog.action == "calculate_scores").count() == 1

    def test_without_connection(self, client, tenant):
        assert client.post(f"/api/v1/tenants/{tenant.id}/scores").status_code == 404

    def test_graph_failure(self, client, connected_tenant):
        error = GraphAPIError(500, "/security/secureScores")
        with patch.object(ScoreService, "save_tenant_daily_scores", AsyncMock(side_effect=error)):
            response = client.post(f"/api/v1/tenants/{connected_tenant.id}/scores")
        assert response.status_code == 502


def test_maturity_scores_newest_first(client, db_session, tenant):
    today = date.today()
    _add_score(db_session, tenant, shift_months(today, -1), 40, 50)
    _add_score(db_session, tenant, today, 45, 55)
    _add_score(db_session, tenant, shift_months(today, -6), 10, 10)

    response = client.get(f"/api/v1/tenants/{tenant.id}/maturity-scores")
    assert response.status_code == 200
    data = response.json()
    assert [r["totalScorePct"] for r in data] == [45, 40]
    assert data[0]["scoreDate"] == today.isoformat()


def test_score_history_uses_previous_months(client, db_session, tenant):
    today = date.today()
    last_month = shift_months(today.replace(day=1), -1)
    _add_score(db_session, tenant, today, 45, 55)
    _add_score(db_session, tenant, last_month, 40, 0)

    response = client.get(f"/api/v1/tenants/{tenant.id}/score-history")
    assert response.status_code == 200
    data = response.json()
    assert [p["totalScorePct"] for p in data["maturity"]] == [40]
    # A zero secure score is left off the chart
    assert data["secure"] == []


def test_scores_are_tenant_scoped(as_user, analyst_user, make_tenant):
    other = make_tenant(name="Other Co")
    response = as_user(analyst_user).get(f"/api/v1/tenants/{other.id}/maturity-scores")
    assert response.status_code == 403
