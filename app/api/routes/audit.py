"""Audit log API routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.services.audit_service import list_audit_logs
from app.core.auth import User, get_current_user, require_admin
from app.core.database import get_db
from app.core.rate_limit import rate_limit
from app.schemas.audit import AuditLogEntry, AuditLogPage

router = APIRouter(
    prefix="/api/v1/audit-logs",
    tags=["audit"],
    dependencies=[Depends(get_current_user)],
)


@router.get(
    "",
    response_model=AuditLogPage,
    dependencies=[Depends(rate_limit("default"))],
)
async def get_audit_logs(
    tenant_id: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    """Newest-first audit entries. Requires admin role."""
    entries, total = list_audit_logs(db, tenant_id=tenant_id, limit=limit, offset=offset)
    return AuditLogPage(
        items=[AuditLogEntry.model_validate(e) for e in entries],
        total=total,
        limit=limit,
        offset=offset,
    )
