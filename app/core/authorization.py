"""Tenant authorization and access control.

Provides tenant isolation enforcement on top of the user-tenant mapping
table. Admins see every tenant; everyone else sees the tenants listed in
their token or mapped to them in ``user_tenants``.
"""

import logging

from fastapi import Depends, HTTPException, Path, status
from sqlalchemy.orm import Session

from app.core.auth import User, get_current_user
from app.core.database import get_db
from app.models.tenant import Tenant, UserTenant

logger = logging.getLogger(__name__)


def get_user_tenants(
    user: User,
    db: Session,
    include_inactive: bool = False,
) -> list[Tenant]:
    """Get list of tenants the user has access to.

    Soft-deleted tenants are never returned.
    """
    query = db.query(Tenant).filter(Tenant.deleted_at.is_(None))

    if not user.is_admin:
        mapped = db.query(UserTenant.tenant_id).filter(
            UserTenant.user_id == user.id,
            UserTenant.is_active == True,  # noqa: E712
        )
        if user.tenant_ids:
            query = query.filter(
                Tenant.id.in_(user.tenant_ids) | Tenant.id.in_(mapped)
            )
        else:
            query = query.filter(Tenant.id.in_(mapped))

    if not include_inactive:
        query = query.filter(Tenant.is_active == True)  # noqa: E712

    return query.order_by(Tenant.name).all()


def get_user_tenant_ids(user: User, db: Session) -> list[str]:
    """Internal ids of the tenants the user can access."""
    return [t.id for t in get_user_tenants(user, db)]


def validate_tenant_access(
    user: User,
    tenant_id: str,
    db: Session,
    raise_exception: bool = True,
) -> bool:
    """Validate that user has access to a specific tenant.

    Args:
        user: The authenticated user
        tenant_id: Internal tenant id
        db: Database session
        raise_exception: Whether to raise on failure

    Raises:
        HTTPException: 403 Forbidden if user doesn't have access
    """
    if user.has_access_to_tenant(tenant_id):
        return True

    mapping = (
        db.query(UserTenant)
        .filter(
            UserTenant.user_id == user.id,
            UserTenant.tenant_id == tenant_id,
            UserTenant.is_active == True,  # noqa: E712
        )
        .first()
    )
    if mapping:
        return True

    if raise_exception:
        logger.warning(f"Tenant access denied: user={user.id}, tenant={tenant_id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Access denied to tenant {tenant_id}",
        )
    return False


class TenantAuthorization:
    """Helper class for tenant authorization in route handlers."""

    def __init__(self, user: User, db: Session) -> None:
        self.user = user
        self.db = db
        self._accessible_tenants: list[str] | None = None

    @property
    def accessible_tenant_ids(self) -> list[str]:
        if self._accessible_tenants is None:
            self._accessible_tenants = get_user_tenant_ids(self.user, self.db)
        return self._accessible_tenants

    def can_access(self, tenant_id: str) -> bool:
        if self.user.is_admin:
            return True
        return tenant_id in self.accessible_tenant_ids

    def validate_access(self, tenant_id: str) -> None:
        """Validate access to a tenant, raising 403 if denied."""
        validate_tenant_access(self.user, tenant_id, self.db)

    def get_tenant(self, tenant_id: str) -> Tenant:
        """Load a live tenant the user may see.

        Raises:
            HTTPException: 403 if denied, 404 if missing or soft-deleted
        """
        self.validate_access(tenant_id)

        tenant = (
            self.db.query(Tenant)
            .filter(Tenant.id == tenant_id, Tenant.deleted_at.is_(None))
            .first()
        )
        if not tenant:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Tenant {tenant_id} not found",
            )
        return tenant


async def get_tenant_authorization(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TenantAuthorization:
    """Dependency to get TenantAuthorization helper."""
    return TenantAuthorization(user, db)


async def get_authorized_tenant(
    tenant_id: str = Path(..., description="Internal tenant id"),
    authz: TenantAuthorization = Depends(get_tenant_authorization),
) -> Tenant:
    """Route dependency resolving the ``{tenant_id}`` path segment to a Tenant."""
    return authz.get_tenant(tenant_id)
