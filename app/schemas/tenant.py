"""Tenant-related Pydantic schemas.

Includes strict validation for Azure tenant and app registration GUIDs.
"""

import re
from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, Field, field_validator

UUID_PATTERN = r'^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$'


def validate_uuid(v: str, field_name: str) -> str:
    """Validate UUID format (8-4-4-4-12 pattern)."""
    if v is None:
        return v

    if not re.match(UUID_PATTERN, v):
        raise ValueError(f"{field_name} must be a valid UUID (e.g., '12345678-1234-1234-1234-123456789abc')")
    return v.lower()  # Normalize to lowercase


TenantIdField = Annotated[str, Field(..., min_length=36, max_length=36)]


class TenantCreate(BaseModel):
    """Schema for creating a new tenant."""

    name: str = Field(..., min_length=1, max_length=255)
    tenant_id: TenantIdField
    description: str | None = Field(None, max_length=1000)

    @field_validator("tenant_id")
    @classmethod
    def validate_tenant_id(cls, v: str) -> str:
        return validate_uuid(v, "tenant_id")


class TenantUpdate(BaseModel):
    """Schema for updating a tenant."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=1000)
    is_active: bool | None = None


class TenantResponse(BaseModel):
    """Schema for tenant response."""

    id: str
    name: str
    tenant_id: str
    description: str | None = None
    is_active: bool
    has_connection: bool = False
    deleted_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TenantUserAdd(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=255)


class TenantUserResponse(BaseModel):
    """A user with access to a tenant."""

    id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    role: str
    granted_at: datetime | None = None


class ConnectionCreate(BaseModel):
    """Microsoft 365 app registration for a tenant.

    ``tenant_domain`` is the directory GUID or ``*.onmicrosoft.com`` name.
    """

    tenant_name: str = Field(..., min_length=1, max_length=255)
    tenant_domain: str = Field(..., min_length=1, max_length=255)
    client_id: TenantIdField
    client_secret: str = Field(..., min_length=1, max_length=500)

    @field_validator("client_id")
    @classmethod
    def validate_client_id(cls, v: str) -> str:
        return validate_uuid(v, "client_id")


class ConnectionResponse(BaseModel):
    """Stored connection; the client secret is never returned."""

    id: str
    tenant_id: str
    tenant_name: str
    tenant_domain: str
    client_id: str
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
