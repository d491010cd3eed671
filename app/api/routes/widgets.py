"""Tenant widget API routes.

Responses use the dashboard's camelCase keys.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.api.services.audit_service import log_action
from app.api.services.graph_client import GraphAPIError, MissingConnectionError
from app.api.services.score_service import ScoreService
from app.api.services.widget_service import WidgetService, tenant_widget_to_dict
from app.core.auth import User, get_current_user, require_admin
from app.core.authorization import get_authorized_tenant
from app.core.database import get_db
from app.core.rate_limit import rate_limit
from app.models.tenant import Tenant
from app.schemas.widget import CustomValueResponse, CustomValueUpdate

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/tenants",
    tags=["widgets"],
    dependencies=[Depends(get_current_user)],
)


@router.get(
    "/{tenant_id}/widgets",
    dependencies=[Depends(rate_limit("default"))],
)
async def list_widgets(
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    """Tenant widgets with catalogue metadata.

    Manual widgets the tenant has never touched are seeded as disabled.
    """
    return WidgetService(db).list_tenant_widgets(tenant.id)


@router.post(
    "/{tenant_id}/widgets/{widget_id}/toggle",
    dependencies=[Depends(rate_limit("default"))],
)
async def toggle_widget(
    widget_id: str,
    request: Request,
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> dict[str, Any]:
    """Enable or disable a widget for the tenant.

    Body: ``{"isEnabled": true}``. Requires admin role.
    """
    try:
        body = await request.json()
    except ValueError:
        body = None

    is_enabled = body.get("isEnabled") if isinstance(body, dict) else None
    if not isinstance(is_enabled, bool):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="isEnabled must be a boolean",
        )

    try:
        row = WidgetService(db).toggle_widget(tenant.id, widget_id, is_enabled)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    log_action(
        db, current_user.id, "toggle_widget", tenant_id=tenant.id,
        details={"widgetId": widget_id, "isEnabled": is_enabled},
        entity_type="widget", entity_id=widget_id,
    )
    return tenant_widget_to_dict(row)


@router.patch(
    "/{tenant_id}/widgets/{key}",
    response_model=CustomValueResponse,
    response_model_by_alias=True,
    dependencies=[Depends(rate_limit("default"))],
)
async def set_custom_value(
    key: str,
    payload: CustomValueUpdate,
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Store an analyst-entered value for a widget. Requires admin role."""
    row = WidgetService(db).set_custom_value(tenant.id, key, payload.custom_value)
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Widget {key} not found",
        )

    log_action(
        db, current_user.id, "set_widget_custom_value", tenant_id=tenant.id,
        details={"key": key, "customValue": payload.custom_value},
        entity_type="widget", entity_id=key,
    )
    return CustomValueResponse(tenant_id=tenant.id, widget_key=key, custom_value=row.custom_value)


@router.get(
    "/{tenant_id}/widget/{key}",
    dependencies=[Depends(rate_limit("default"))],
)
async def get_widget(
    key: str,
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """A single widget merged with the tenant's state."""
    widget = WidgetService(db).get_tenant_widget(tenant.id, key)
    if widget is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Widget {key} not found",
        )
    return widget


@router.get(
    "/{tenant_id}/maturity",
    dependencies=[Depends(rate_limit("scores"))],
)
async def get_maturity(
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Live maturity breakdown from Graph and the manual widgets."""
    try:
        client = ScoreService(db).get_client(tenant.id)
        return await WidgetService(db).get_live_maturity(tenant.id, client)
    except MissingConnectionError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except GraphAPIError as e:
        logger.error(f"Graph error building maturity for {tenant.id}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
