"""Maturity score API routes."""

import logging
import secrets
from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from app.api.services.audit_service import log_action
from app.api.services.graph_client import GraphAPIError, MissingConnectionError
from app.api.services.maturity import get_last_three_months, split_score_data
from app.api.services.score_service import ScoreService, score_to_dict
from app.core.auth import User, get_current_user
from app.core.authorization import get_authorized_tenant
from app.core.config import get_settings
from app.core.database import get_db
from app.core.rate_limit import rate_limit
from app.core.sync.tenant_scores import run_daily_scores
from app.models.tenant import Tenant

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/tenants",
    tags=["scores"],
    dependencies=[Depends(get_current_user)],
)

# Called by the external cron runner with a shared secret, not a user token
cron_router = APIRouter(prefix="/api/v1/scores", tags=["scores"])


@router.post(
    "/{tenant_id}/scores",
    dependencies=[Depends(rate_limit("scores"))],
)
async def calculate_scores(
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    """Calculate and store today's scores for the tenant."""
    try:
        result = await ScoreService(db).save_tenant_daily_scores(tenant.id)
    except MissingConnectionError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except GraphAPIError as e:
        logger.error(f"Graph error scoring tenant {tenant.id}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    log_action(
        db, current_user.id, "calculate_scores", tenant_id=tenant.id,
        details={"totalScore": result["totalScore"], "maxScore": result["maxScore"]},
        entity_type="tenant_score", entity_id=tenant.id,
    )
    return result


@router.get(
    "/{tenant_id}/maturity-scores",
    dependencies=[Depends(rate_limit("default"))],
)
async def get_maturity_scores(
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    """Daily scores from the last three months, newest first."""
    return [score_to_dict(row) for row in ScoreService(db).get_recent_scores(tenant.id)]


@router.get(
    "/{tenant_id}/score-history",
    dependencies=[Depends(rate_limit("default"))],
)
async def get_score_history(
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
) -> dict[str, list[dict[str, Any]]]:
    """Month-end maturity and secure score series for charting."""
    records = [score_to_dict(row) for row in ScoreService(db).get_recent_scores(tenant.id)]
    return split_score_data(get_last_three_months(records))


@cron_router.post("/run-daily")
async def run_daily(x_cron_secret: str | None = Header(default=None)) -> dict[str, Any]:
    """Score every active tenant.

    Requires the ``x-cron-secret`` header to match ``SCORES_CRON_SECRET``.
    """
    expected = get_settings().scores_cron_secret
    if not expected or not x_cron_secret or not secrets.compare_digest(x_cron_secret, expected):
        logger.warning("Rejected run-daily call with missing or invalid cron secret")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    return {"results": await run_daily_scores()}
