"""Audit trail for mutating API actions."""

import json
import logging
from typing import Any

from sqlalchemy.orm import Session

from app.models.audit import AuditLog

logger = logging.getLogger(__name__)


def log_action(
    db: Session,
    user_id: str | None,
    action: str,
    tenant_id: str | None = None,
    details: Any = None,
    entity_type: str | None = None,
    entity_id: Any = None,
) -> AuditLog:
    """Write an audit row in the caller's session and commit it.

    ``details`` may be a string or any JSON-serialisable value.
    """
    if details is not None and not isinstance(details, str):
        details = json.dumps(details, default=str)

    entry = AuditLog(
        user_id=user_id,
        tenant_id=tenant_id,
        action=action,
        details=details,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
    )
    db.add(entry)
    db.commit()

    logger.info(f"Audit: {action} by {user_id} on tenant {tenant_id}")
    return entry


def list_audit_logs(
    db: Session,
    tenant_id: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[AuditLog], int]:
    """Newest-first audit entries and the unpaginated total."""
    query = db.query(AuditLog)
    if tenant_id:
        query = query.filter(AuditLog.tenant_id == tenant_id)

    total = query.count()
    entries = query.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).offset(offset).limit(limit).all()
    return entries, total
