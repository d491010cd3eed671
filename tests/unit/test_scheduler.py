"""Tests for background job scheduling."""

from unittest.mock import AsyncMock, patch

import pytest

from app.core import scheduler as scheduler_module


def test_init_registers_jobs():
    scheduler = scheduler_module.init_scheduler()

    job_ids = {job.id for job in scheduler.get_jobs()}
    assert job_ids == {"daily_scores", "secure_score_snapshot", "secure_score_cleanup"}
    assert scheduler_module.get_scheduler() is scheduler


def test_snapshot_jobs_can_be_disabled(monkeypatch):
    monkeypatch.setattr(scheduler_module.settings, "secure_score_snapshot_enabled", False)

    scheduler = scheduler_module.init_scheduler()

    assert [job.id for job in scheduler.get_jobs()] == ["daily_scores"]


@pytest.mark.asyncio
async def test_manual_trigger():
    with patch("app.core.scheduler.run_daily_scores", AsyncMock(return_value=[])) as run:
        assert await scheduler_module.trigger_manual_sync("daily_scores") is True
    run.assert_awaited_once()


@pytest.mark.asyncio
async def test_manual_trigger_unknown_job():
    assert await scheduler_module.trigger_manual_sync("costs") is False
