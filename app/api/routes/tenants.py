"""Tenant management API routes.

SECURITY FEATURES:
- Tenant-scoped reads via the authorization layer
- Admin role required for every mutation
- Microsoft 365 client secrets are write-only
"""

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.orm import Session

from app.api.services.audit_service import log_action
from app.core.auth import User, get_current_user, require_admin
from app.core.authorization import get_authorized_tenant, get_user_tenants
from app.core.database import get_db
from app.core.rate_limit import rate_limit
from app.models.tenant import Microsoft365Connection, Tenant, UserTenant
from app.models.user import AppUser
from app.schemas.tenant import (
    ConnectionCreate,
    ConnectionResponse,
    TenantCreate,
    TenantResponse,
    TenantUpdate,
    TenantUserAdd,
    TenantUserResponse,
)

router = APIRouter(
    prefix="/api/v1/tenants",
    tags=["tenants"],
    dependencies=[Depends(get_current_user)],
)


@router.get(
    "",
    response_model=list[TenantResponse],
    dependencies=[Depends(rate_limit("default"))],
)
async def list_tenants(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List all tenants the current user has access to."""
    return get_user_tenants(current_user, db, include_inactive=current_user.is_admin)


@router.post(
    "",
    response_model=TenantResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("default"))],
)
async def create_tenant(
    tenant: TenantCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Create a tenant, or restore a soft-deleted one with the same Azure ID.

    Requires admin role.
    """
    existing = db.query(Tenant).filter(Tenant.tenant_id == tenant.tenant_id).first()
    if existing and not existing.is_deleted:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Tenant with Azure tenant ID {tenant.tenant_id} already exists",
        )

    if existing:
        existing.deleted_at = None
        existing.is_active = True
        existing.name = tenant.name
        existing.description = tenant.description
        db_tenant = existing
        action = "restore_tenant"
    else:
        db_tenant = Tenant(
            id=str(uuid.uuid4()),
            name=tenant.name,
            tenant_id=tenant.tenant_id,
            description=tenant.description,
        )
        db.add(db_tenant)
        action = "create_tenant"

    db.commit()
    db.refresh(db_tenant)

    log_action(
        db, current_user.id, action, tenant_id=db_tenant.id,
        details=f"{db_tenant.name} ({db_tenant.tenant_id})",
        entity_type="tenant", entity_id=db_tenant.id,
    )
    return db_tenant


@router.get(
    "/{tenant_id}",
    response_model=TenantResponse,
    dependencies=[Depends(rate_limit("default"))],
)
async def get_tenant(tenant: Tenant = Depends(get_authorized_tenant)):
    """Get a specific tenant.

    User must have access to the tenant.
    """
    return tenant


@router.patch(
    "/{tenant_id}",
    response_model=TenantResponse,
    dependencies=[Depends(rate_limit("default"))],
)
async def update_tenant(
    tenant_update: TenantUpdate,
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Update a tenant configuration.

    Requires admin role.
    """
    update_data = tenant_update.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(tenant, field, value)

    db.commit()
    db.refresh(tenant)

    log_action(
        db, current_user.id, "update_tenant", tenant_id=tenant.id,
        details=update_data, entity_type="tenant", entity_id=tenant.id,
    )
    return tenant


@router.delete(
    "/{tenant_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(rate_limit("default"))],
)
async def delete_tenant(
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Soft-delete a tenant.

    Requires admin role.
    """
    tenant.deleted_at = datetime.utcnow()
    tenant.is_active = False
    db.commit()

    log_action(
        db, current_user.id, "delete_tenant", tenant_id=tenant.id,
        details=tenant.name, entity_type="tenant", entity_id=tenant.id,
    )


@router.post(
    "/{tenant_id}/restore",
    response_model=TenantResponse,
    dependencies=[Depends(rate_limit("default"))],
)
async def restore_tenant(
    tenant_id: str = Path(..., description="Internal tenant id"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Undo a soft delete.

    Requires admin role.
    """
    tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
    if not tenant:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tenant {tenant_id} not found",
        )

    tenant.deleted_at = None
    tenant.is_active = True
    db.commit()
    db.refresh(tenant)

    log_action(
        db, current_user.id, "restore_tenant", tenant_id=tenant.id,
        details=tenant.name, entity_type="tenant", entity_id=tenant.id,
    )
    return tenant


# =============================================================================
# Tenant users
# =============================================================================


@router.get(
    "/{tenant_id}/users",
    response_model=list[TenantUserResponse],
    dependencies=[Depends(rate_limit("default"))],
)
async def list_tenant_users(
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
):
    """Users with an active mapping to the tenant."""
    rows = (
        db.query(AppUser, UserTenant)
        .join(UserTenant, UserTenant.user_id == AppUser.id)
        .filter(UserTenant.tenant_id == tenant.id, UserTenant.is_active)
        .order_by(AppUser.email)
        .all()
    )
    return [
        TenantUserResponse(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            role=user.role,
            granted_at=mapping.granted_at,
        )
        for user, mapping in rows
    ]


@router.post(
    "/{tenant_id}/users",
    response_model=TenantUserResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("default"))],
)
async def add_tenant_user(
    payload: TenantUserAdd,
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Grant a user access to the tenant.

    Requires admin role.
    """
    user = db.query(AppUser).filter(AppUser.id == payload.user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {payload.user_id} not found",
        )

    mapping = (
        db.query(UserTenant)
        .filter(UserTenant.user_id == user.id, UserTenant.tenant_id == tenant.id)
        .first()
    )
    if mapping is None:
        mapping = UserTenant(
            id=str(uuid.uuid4()),
            user_id=user.id,
            tenant_id=tenant.id,
            granted_by=current_user.id,
        )
        db.add(mapping)
    mapping.is_active = True
    db.commit()
    db.refresh(mapping)

    log_action(
        db, current_user.id, "add_tenant_user", tenant_id=tenant.id,
        details=f"Granted {user.email} access to {tenant.name}",
        entity_type="user", entity_id=user.id,
    )
    return TenantUserResponse(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        role=user.role,
        granted_at=mapping.granted_at,
    )


@router.delete(
    "/{tenant_id}/users/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(rate_limit("default"))],
)
async def remove_tenant_user(
    user_id: str,
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Revoke a user's access to the tenant.

    Requires admin role.
    """
    deleted = (
        db.query(UserTenant)
        .filter(UserTenant.user_id == user_id, UserTenant.tenant_id == tenant.id)
        .delete(synchronize_session=False)
    )
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} is not assigned to tenant {tenant.id}",
        )
    db.commit()

    log_action(
        db, current_user.id, "remove_tenant_user", tenant_id=tenant.id,
        details=f"Revoked {user_id} from {tenant.name}",
        entity_type="user", entity_id=user_id,
    )


# =============================================================================
# Microsoft 365 connection
# =============================================================================


@router.get(
    "/{tenant_id}/microsoft365",
    response_model=ConnectionResponse,
    dependencies=[Depends(rate_limit("default"))],
)
async def get_connection(tenant: Tenant = Depends(get_authorized_tenant)):
    """The tenant's Microsoft 365 connection, without the client secret."""
    if tenant.connection is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Microsoft 365 connection not found",
        )
    return tenant.connection


@router.post(
    "/{tenant_id}/microsoft365",
    response_model=ConnectionResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("default"))],
)
async def upsert_connection(
    payload: ConnectionCreate,
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Create or replace the tenant's Microsoft 365 connection.

    Requires admin role.
    """
    connection = tenant.connection
    if connection is None:
        connection = Microsoft365Connection(
            id=str(uuid.uuid4()),
            tenant_id=tenant.id,
            created_by=current_user.id,
        )
        db.add(connection)

    connection.tenant_name = payload.tenant_name
    connection.tenant_domain = payload.tenant_domain
    connection.client_id = payload.client_id
    connection.client_secret = payload.client_secret
    db.commit()
    db.refresh(connection)

    log_action(
        db, current_user.id, "upsert_microsoft365_connection", tenant_id=tenant.id,
        details=f"Connection for {payload.tenant_name} ({payload.tenant_domain})",
        entity_type="microsoft365_connection", entity_id=connection.id,
    )
    return connection


@router.delete(
    "/{tenant_id}/microsoft365",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(rate_limit("default"))],
)
async def delete_connection(
    tenant: Tenant = Depends(get_authorized_tenant),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Remove the tenant's Microsoft 365 connection.

    Requires admin role.
    """
    connection = tenant.connection
    if connection is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Microsoft 365 connection not found",
        )

    connection_id = connection.id
    db.delete(connection)
    db.commit()

    log_action(
        db, current_user.id, "delete_microsoft365_connection", tenant_id=tenant.id,
        details=f"Deleted connection for {tenant.name}",
        entity_type="microsoft365_connection", entity_id=connection_id,
    )
