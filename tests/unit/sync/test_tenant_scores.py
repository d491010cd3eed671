"""Unit tests for the daily tenant score job."""

from unittest.mock import AsyncMock, patch

import pytest

from app.api.services.graph_client import MissingConnectionError
from app.core.sync.tenant_scores import run_daily_scores

MODULE = "app.core.sync.tenant_scores"


@pytest.fixture
def db(mock_get_db_context):
    return mock_get_db_context(MODULE)


@pytest.fixture
def score_service():
    with patch(f"{MODULE}.ScoreService") as service_cls:
        yield service_cls.return_value


class TestRunDailyScores:
    """Tests for run_daily_scores."""

    @pytest.mark.asyncio
    async def test_scores_each_active_tenant(self, db, make_tenant, score_service):
        first = make_tenant(name="Alpha")
        second = make_tenant(name="Beta")
        make_tenant(name="Paused", is_active=False)
        score_service.save_tenant_daily_scores = AsyncMock(
            side_effect=lambda tenant_id, now=None: {"tenantId": tenant_id, "totalScore": 100}
        )

        results = await run_daily_scores()

        assert sorted(r["tenantId"] for r in results) == sorted([first.id, second.id])
        assert score_service.save_tenant_daily_scores.await_count == 2

    @pytest.mark.asyncio
    async def test_missing_connection_reported(self, db, tenant, score_service):
        score_service.save_tenant_daily_scores = AsyncMock(side_effect=MissingConnectionError(tenant.id))

        results = await run_daily_scores()

        assert results == [{
            "tenantId": tenant.id,
            "error": f"No Microsoft 365 connection found for tenant {tenant.id}",
        }]

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_batch(self, db, make_tenant, score_service):
        make_tenant(name="Alpha")
        make_tenant(name="Beta")
        score_service.save_tenant_daily_scores = AsyncMock(side_effect=[
            RuntimeError("boom"),
            {"tenantId": "ok", "totalScore": 50},
        ])

        results = await run_daily_scores()

        assert len(results) == 2
        assert sum(1 for r in results if "error" in r) == 1

    @pytest.mark.asyncio
    async def test_no_tenants(self, db, score_service):
        assert await run_daily_scores() == []

    @pytest.mark.asyncio
    async def test_fatal_error_propagates(self):
        with patch(f"{MODULE}.get_db_context", side_effect=RuntimeError("database down")):
            with pytest.raises(RuntimeError, match="database down"):
                await run_daily_scores()
