"""Audit log Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class AuditLogEntry(BaseModel):
    id: int
    user_id: str | None = None
    tenant_id: str | None = None
    action: str
    details: str | None = None
    entity_type: str | None = None
    entity_id: str | None = None
    timestamp: datetime

    model_config = {"from_attributes": True}


class AuditLogPage(BaseModel):
    """Paginated audit log listing."""

    items: list[AuditLogEntry] = Field(default_factory=list)
    total: int
    limit: int
    offset: int
