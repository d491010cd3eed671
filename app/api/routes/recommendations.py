"""Recommendations API routes.

Covers per-tenant recommendations, the admin-curated global library and
the pins that attach library entries to a tenant's dashboard widgets.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.services.audit_service import log_action
from app.api.services.recommendation_service import RecommendationService
from app.core.auth import User, get_current_user, require_admin
from app.core.authorization import get_authorized_tenant
from app.core.database import get_db
from app.core.rate_limit import rate_limit
from app.models.recommendation import GlobalRecommendation, Recommendation
from app.models.tenant import Tenant
from app.schemas.recommendation import (
    GlobalRecommendationCreate,
    GlobalRecommendationResponse,
    GlobalRecommendationUpdate,
    RecommendationCreate,
    RecommendationResponse,
    RecommendationStatus,
    RecommendationUpdate,
    WidgetRecommendationCreate,
    WidgetRecommendationResponse,
)

router = APIRouter(
    prefix="/api/v1",
    tags=["recommendations"],
    dependencies=[Depends(get_current_user), Depends(rate_limit("default"))],
)


def _get_recommendation_or_404(service: RecommendationService, tenant_id: str, recommendation_id: int) -> Recommendation:
    recommendation = service.get_recommendation(tenant_id, recommendation_id)
    if recommendation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Recommendation {recommendation_id} not found",
        )
    return recommendation


def _get_global_or_404(service: RecommendationService, recommendation_id: int) -> GlobalRecommendation:
    recommendation = service.get_global_recommendation(recommendation_id)
    if recommendation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Global recommendation {recommendation_id} not found",
        )
    return recommendation


# =============================================================================
# Tenant recommendations
# =============================================================================


@router.get(
    "/tenants/{tenant_id}/recommendations",
    response_model=list[RecommendationResponse],
)
async def list_recommendations(
    status_filter: RecommendationStatus | None = Query(default=None, alias="status"),
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
):
    """Tenant recommendations, newest first, optionally filtered by status."""
    return RecommendationService(db).get_recommendations(
        tenant.id, status_filter.value if status_filter else None
    )


@router.post(
    "/tenants/{tenant_id}/recommendations",
    response_model=RecommendationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_recommendation(
    payload: RecommendationCreate,
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    recommendation = RecommendationService(db).create_recommendation(
        tenant.id, payload.model_dump(mode="json"), created_by=current_user.id
    )

    log_action(
        db, current_user.id, "create_recommendation", tenant_id=tenant.id,
        details=recommendation.title, entity_type="recommendation", entity_id=recommendation.id,
    )
    return recommendation


@router.patch(
    "/tenants/{tenant_id}/recommendations/{recommendation_id}",
    response_model=RecommendationResponse,
)
async def update_recommendation(
    recommendation_id: int,
    payload: RecommendationUpdate,
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update a recommendation; moving to completed stamps ``completed_at``."""
    service = RecommendationService(db)
    recommendation = _get_recommendation_or_404(service, tenant.id, recommendation_id)
    changes = payload.model_dump(mode="json", exclude_unset=True)
    recommendation = service.update_recommendation(recommendation, changes)

    log_action(
        db, current_user.id, "update_recommendation", tenant_id=tenant.id,
        details=changes, entity_type="recommendation", entity_id=recommendation.id,
    )
    return recommendation


@router.delete(
    "/tenants/{tenant_id}/recommendations/{recommendation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_recommendation(
    recommendation_id: int,
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    service = RecommendationService(db)
    recommendation = _get_recommendation_or_404(service, tenant.id, recommendation_id)
    title = recommendation.title
    service.delete_recommendation(recommendation)

    log_action(
        db, current_user.id, "delete_recommendation", tenant_id=tenant.id,
        details=title, entity_type="recommendation", entity_id=recommendation_id,
    )


# =============================================================================
# Global recommendation library
# =============================================================================


@router.get(
    "/recommendations/global",
    response_model=list[GlobalRecommendationResponse],
)
async def list_global_recommendations(
    category: str | None = Query(default=None),
    include_inactive: bool = Query(default=False),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Active library entries. Only admins may include inactive ones."""
    return RecommendationService(db).get_global_recommendations(
        category=category,
        include_inactive=include_inactive and current_user.is_admin,
    )


@router.post(
    "/recommendations/global",
    response_model=GlobalRecommendationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_global_recommendation(
    payload: GlobalRecommendationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    recommendation = RecommendationService(db).create_global_recommendation(
        payload.model_dump(mode="json"), created_by=current_user.id
    )

    log_action(
        db, current_user.id, "create_global_recommendation",
        details=recommendation.title, entity_type="global_recommendation", entity_id=recommendation.id,
    )
    return recommendation


@router.patch(
    "/recommendations/global/{recommendation_id}",
    response_model=GlobalRecommendationResponse,
)
async def update_global_recommendation(
    recommendation_id: int,
    payload: GlobalRecommendationUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    service = RecommendationService(db)
    recommendation = _get_global_or_404(service, recommendation_id)
    changes = payload.model_dump(mode="json", exclude_unset=True)
    recommendation = service.update_global_recommendation(recommendation, changes)

    log_action(
        db, current_user.id, "update_global_recommendation",
        details=changes, entity_type="global_recommendation", entity_id=recommendation.id,
    )
    return recommendation


@router.delete(
    "/recommendations/global/{recommendation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_global_recommendation(
    recommendation_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Delete a library entry along with any widget pins using it."""
    service = RecommendationService(db)
    recommendation = _get_global_or_404(service, recommendation_id)
    title = recommendation.title
    service.delete_global_recommendation(recommendation)

    log_action(
        db, current_user.id, "delete_global_recommendation",
        details=title, entity_type="global_recommendation", entity_id=recommendation_id,
    )


# =============================================================================
# Widget pins
# =============================================================================


@router.get(
    "/tenants/{tenant_id}/widget-recommendations",
    response_model=list[WidgetRecommendationResponse],
)
async def list_widget_recommendations(
    widget_type: str | None = Query(default=None),
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
):
    return RecommendationService(db).get_widget_recommendations(tenant.id, widget_type)


@router.post(
    "/tenants/{tenant_id}/widget-recommendations",
    response_model=WidgetRecommendationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_widget_recommendation(
    payload: WidgetRecommendationCreate,
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Pin a global recommendation to one of the tenant's widgets."""
    try:
        pin = RecommendationService(db).add_widget_recommendation(
            tenant.id,
            payload.global_recommendation_id,
            payload.widget_type,
            created_by=current_user.id,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    log_action(
        db, current_user.id, "add_widget_recommendation", tenant_id=tenant.id,
        details={"globalRecommendationId": pin.global_recommendation_id, "widgetType": pin.widget_type},
        entity_type="widget_recommendation", entity_id=pin.id,
    )
    return pin


@router.delete(
    "/tenants/{tenant_id}/widget-recommendations/{pin_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_widget_recommendation(
    pin_id: int,
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not RecommendationService(db).remove_widget_recommendation(tenant.id, pin_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Widget recommendation {pin_id} not found",
        )

    log_action(
        db, current_user.id, "remove_widget_recommendation", tenant_id=tenant.id,
        entity_type="widget_recommendation", entity_id=pin_id,
    )
