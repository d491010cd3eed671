"""Microsoft 365 posture API routes.

Each endpoint reads live Graph data through the tenant's stored
connection. A missing connection is a 404 and Graph failures surface as
502 Bad Gateway.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.services import evaluators
from app.api.services.graph_client import GraphAPIError, GraphClient, MissingConnectionError
from app.api.services.score_service import ScoreService
from app.core.auth import get_current_user
from app.core.authorization import get_authorized_tenant
from app.core.database import get_db
from app.core.rate_limit import rate_limit
from app.models.score import SecureScoreHistory
from app.models.tenant import Tenant

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/tenants/{tenant_id}/microsoft365",
    tags=["microsoft365"],
    dependencies=[Depends(get_current_user), Depends(rate_limit("default"))],
)

SecureScoreCategory = Literal["identity", "data", "apps"]


async def _with_graph(
    db: Session,
    tenant: Tenant,
    fetch: Callable[[GraphClient], Awaitable[Any]],
) -> Any:
    """Run ``fetch`` against the tenant's Graph client, mapping errors to HTTP."""
    try:
        client = ScoreService(db).get_client(tenant.id)
        return await fetch(client)
    except MissingConnectionError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except GraphAPIError as e:
        logger.error(f"Graph request failed for tenant {tenant.id}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.get("/m365-admins")
async def get_m365_admins(
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    """Members of every directory role with "admin" in its name."""
    return await _with_graph(db, tenant, lambda client: client.get_admin_role_members())


@router.get("/sign-in-policies")
async def get_sign_in_policies(
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    policies = await _with_graph(db, tenant, lambda client: client.get_conditional_access_policies())
    return {
        "value": policies,
        "riskySignInPolicyExists": evaluators.has_risk_based_sign_in_policy(policies),
    }


@router.get("/trusted-locations")
async def get_trusted_locations(
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    locations = await _with_graph(db, tenant, lambda client: client.get_named_locations())
    return {
        "value": locations,
        "trustedLocationExists": evaluators.has_trusted_ip_location(locations),
    }


@router.get("/phish-resistant-mfa")
async def get_phish_resistant_mfa(
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
) -> dict[str, list[dict[str, Any]]]:
    """Authentication methods grouped into toEnable, toDisable, enhance and correct."""
    policy = await _with_graph(db, tenant, lambda client: client.get_authentication_methods_policy())
    return evaluators.group_phish_methods(policy)


@router.get("/encrypted-devices")
async def get_unencrypted_devices(
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Managed devices reporting ``isEncrypted: false``."""
    devices = await _with_graph(db, tenant, lambda client: client.get_managed_devices())
    return evaluators.summarise_unencrypted_devices(devices)


@router.get("/device-compliance-policies")
async def get_device_compliance_policies(
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    policies = await _with_graph(db, tenant, lambda client: client.get_device_compliance_policies())
    return {"value": policies, "count": len(policies)}


@router.get("/secure-scores")
async def get_secure_scores(
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    """Daily secure score percentage against the all-tenants average."""
    entries = await _with_graph(db, tenant, lambda client: client.get_secure_scores())
    return evaluators.build_secure_score_trend(entries)


@router.get("/secure-scores/{category}")
async def get_category_secure_scores(
    category: SecureScoreCategory,
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    """Daily secure score restricted to the Identity, Data or Apps controls."""
    entries = await _with_graph(db, tenant, lambda client: client.get_secure_scores())
    return evaluators.build_category_scores(entries, category)


@router.get("/secure-score-history")
async def get_secure_score_history(
    limit: int = Query(default=12, ge=1, le=60),
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    """Stored monthly snapshots, newest first."""
    rows = (
        db.query(SecureScoreHistory)
        .filter(SecureScoreHistory.tenant_id == tenant.id)
        .order_by(SecureScoreHistory.recorded_at.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            "id": row.id,
            "score": row.score,
            "scorePercent": row.score_percent,
            "maxScore": row.max_score,
            "recordedAt": row.recorded_at.isoformat(),
            "reportQuarter": row.report_quarter,
            "reportYear": row.report_year,
        }
        for row in rows
    ]
