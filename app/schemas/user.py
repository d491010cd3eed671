"""User and invite Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.core.auth import VALID_ROLES

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


def validate_role(v: str) -> str:
    if v not in VALID_ROLES:
        raise ValueError(f"role must be one of: {', '.join(VALID_ROLES)}")
    return v


class UserCreate(BaseModel):
    """Schema for an admin creating a user directly."""

    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    first_name: str = Field(..., min_length=1, max_length=255)
    last_name: str = Field(..., min_length=1, max_length=255)
    role: str
    tenant_id: str

    @field_validator("role")
    @classmethod
    def check_role(cls, v: str) -> str:
        return validate_role(v)


class UserTenantSummary(BaseModel):
    id: str
    name: str


class UserResponse(BaseModel):
    """Schema for user response."""

    id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    role: str
    tenants: list[UserTenantSummary] = Field(default_factory=list)
    created_at: datetime | None = None


class UserTenantsUpdate(BaseModel):
    tenant_ids: list[str]


class UserRoleUpdate(BaseModel):
    # Validated in the route so an unknown role is a 400
    role: str


class InviteCreate(BaseModel):
    """Schema for inviting a user to a tenant."""

    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    first_name: str = Field(..., min_length=1, max_length=255)
    last_name: str = Field(..., min_length=1, max_length=255)
    role: str
    tenant_id: str

    @field_validator("role")
    @classmethod
    def check_role(cls, v: str) -> str:
        return validate_role(v)


class InviteResponse(BaseModel):
    id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    role: str
    tenant_id: str
    expires_at: datetime
    accepted: bool
    created_by: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class InviteCreatedResponse(InviteResponse):
    """Returned once, to the admin who created the invite.

    ``accept_url`` carries the token so the link can be passed on by hand
    when the invite email could not be delivered.
    """

    token: str
    accept_url: str
    email_sent: bool


class InviteAccept(BaseModel):
    token: str = Field(..., min_length=1, max_length=255)
