"""Dashboard user administration API routes.

All endpoints require the admin role.
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api.services.audit_service import log_action
from app.core.auth import VALID_ROLES, User, get_current_user, require_admin
from app.core.database import get_db
from app.core.rate_limit import rate_limit
from app.models.tenant import Tenant, UserTenant
from app.models.user import AppUser, Invite
from app.schemas.user import (
    UserCreate,
    UserResponse,
    UserRoleUpdate,
    UserTenantsUpdate,
    UserTenantSummary,
)

router = APIRouter(
    prefix="/api/v1/users",
    tags=["users"],
    dependencies=[Depends(get_current_user)],
)


def _user_response(db: Session, user: AppUser) -> UserResponse:
    tenants = (
        db.query(Tenant)
        .join(UserTenant, UserTenant.tenant_id == Tenant.id)
        .filter(
            UserTenant.user_id == user.id,
            UserTenant.is_active == True,  # noqa: E712
            Tenant.deleted_at.is_(None),
        )
        .order_by(Tenant.name)
        .all()
    )
    return UserResponse(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        role=user.role,
        tenants=[UserTenantSummary(id=t.id, name=t.name) for t in tenants],
        created_at=user.created_at,
    )


def _get_user_or_404(db: Session, user_id: str) -> AppUser:
    user = db.query(AppUser).filter(AppUser.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} not found",
        )
    return user


def _require_tenant(db: Session, tenant_id: str) -> Tenant:
    tenant = (
        db.query(Tenant)
        .filter(Tenant.id == tenant_id, Tenant.deleted_at.is_(None))
        .first()
    )
    if not tenant:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tenant {tenant_id} not found",
        )
    return tenant


@router.get(
    "",
    response_model=list[UserResponse],
    dependencies=[Depends(rate_limit("default"))],
)
async def list_users(
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    """List every dashboard user with the tenants they can see."""
    users = db.query(AppUser).order_by(AppUser.email).all()
    return [_user_response(db, user) for user in users]


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("default"))],
)
async def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Create a user and grant them access to one tenant."""
    if db.query(AppUser).filter(AppUser.email == payload.email).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"User with email {payload.email} already exists",
        )
    tenant = _require_tenant(db, payload.tenant_id)

    user = AppUser(
        id=str(uuid.uuid4()),
        email=payload.email,
        first_name=payload.first_name,
        last_name=payload.last_name,
        role=payload.role,
    )
    db.add(user)
    db.add(UserTenant(
        id=str(uuid.uuid4()),
        user_id=user.id,
        tenant_id=tenant.id,
        granted_by=current_user.id,
    ))
    db.commit()
    db.refresh(user)

    log_action(
        db, current_user.id, "create_user", tenant_id=tenant.id,
        details=f"{user.email} as {user.role}", entity_type="user", entity_id=user.id,
    )
    return _user_response(db, user)


@router.put(
    "/{user_id}/tenants",
    response_model=UserResponse,
    dependencies=[Depends(rate_limit("default"))],
)
async def set_user_tenants(
    user_id: str,
    payload: UserTenantsUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Replace the set of tenants a user can access."""
    user = _get_user_or_404(db, user_id)
    tenant_ids = list(dict.fromkeys(payload.tenant_ids))
    for tenant_id in tenant_ids:
        _require_tenant(db, tenant_id)

    db.query(UserTenant).filter(UserTenant.user_id == user.id).delete(synchronize_session=False)
    for tenant_id in tenant_ids:
        db.add(UserTenant(
            id=str(uuid.uuid4()),
            user_id=user.id,
            tenant_id=tenant_id,
            granted_by=current_user.id,
        ))
    db.commit()

    log_action(
        db, current_user.id, "set_user_tenants",
        details={"email": user.email, "tenant_ids": tenant_ids},
        entity_type="user", entity_id=user.id,
    )
    return _user_response(db, user)


@router.patch(
    "/{user_id}/role",
    response_model=UserResponse,
    dependencies=[Depends(rate_limit("default"))],
)
async def update_user_role(
    user_id: str,
    payload: UserRoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Change a user's role."""
    if payload.role not in VALID_ROLES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid role {payload.role}. Must be one of: {', '.join(VALID_ROLES)}",
        )

    user = _get_user_or_404(db, user_id)
    previous = user.role
    user.role = payload.role
    db.commit()
    db.refresh(user)

    log_action(
        db, current_user.id, "update_user_role",
        details=f"{user.email}: {previous} -> {user.role}",
        entity_type="user", entity_id=user.id,
    )
    return _user_response(db, user)


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(rate_limit("default"))],
)
async def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Delete a user together with their invites and tenant links."""
    user = _get_user_or_404(db, user_id)
    email = user.email

    links = db.query(UserTenant).filter(UserTenant.user_id == user.id).delete(synchronize_session=False)
    invites = 0
    if email:
        invites = db.query(Invite).filter(Invite.email == email).delete(synchronize_session=False)
    db.delete(user)
    db.commit()

    log_action(
        db, current_user.id, "delete_user",
        details={"email": email, "tenant_links": links, "invites": invites},
        entity_type="user", entity_id=user_id,
    )
