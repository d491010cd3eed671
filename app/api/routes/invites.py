"""Invitation API routes.

Admins create, list and revoke invites. Accepting an invite is open to
anyone holding the token.
"""

import logging
import secrets
import uuid
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api.services.audit_service import log_action
from app.api.services.email_service import invite_email
from app.core.auth import User, require_admin
from app.core.config import get_settings
from app.core.database import get_db
from app.core.notifications import create_invite_url, send_email
from app.core.rate_limit import rate_limit
from app.models.tenant import Tenant, UserTenant
from app.models.user import AppUser, Invite
from app.schemas.user import (
    InviteAccept,
    InviteCreate,
    InviteCreatedResponse,
    InviteResponse,
    UserResponse,
    UserTenantSummary,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/invites", tags=["invites"])


@router.post(
    "",
    response_model=InviteCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("default"))],
)
async def create_invite(
    payload: InviteCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Invite a new user to a tenant and email them the acceptance link."""
    if db.query(AppUser).filter(AppUser.email == payload.email).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"User with email {payload.email} already exists",
        )

    tenant = (
        db.query(Tenant)
        .filter(Tenant.id == payload.tenant_id, Tenant.deleted_at.is_(None))
        .first()
    )
    if not tenant:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tenant {payload.tenant_id} not found",
        )

    settings = get_settings()
    invite = Invite(
        id=str(uuid.uuid4()),
        email=payload.email,
        first_name=payload.first_name,
        last_name=payload.last_name,
        role=payload.role,
        tenant_id=tenant.id,
        token=secrets.token_urlsafe(32),
        expires_at=datetime.utcnow() + timedelta(days=settings.invite_expiry_days),
        accepted=False,
        created_by=current_user.id,
    )
    db.add(invite)
    db.commit()
    db.refresh(invite)

    accept_url = create_invite_url(invite.token)
    result = await send_email(invite_email(invite, tenant.name, accept_url, settings.invite_expiry_days))
    if not result["success"]:
        logger.warning(f"Invite email to {invite.email} not delivered: {result['error']}")

    log_action(
        db, current_user.id, "create_invite", tenant_id=tenant.id,
        details=f"Invited {invite.email} as {invite.role}",
        entity_type="invite", entity_id=invite.id,
    )
    return InviteCreatedResponse(
        **InviteResponse.model_validate(invite).model_dump(),
        token=invite.token,
        accept_url=accept_url,
        email_sent=result["success"],
    )


@router.get(
    "",
    response_model=list[InviteResponse],
    dependencies=[Depends(rate_limit("default"))],
)
async def list_pending_invites(
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    """Invites that have not been accepted yet, newest first."""
    return (
        db.query(Invite)
        .filter(Invite.accepted == False)  # noqa: E712
        .order_by(Invite.created_at.desc())
        .all()
    )


@router.delete(
    "/{email}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(rate_limit("default"))],
)
async def delete_invite(
    email: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Revoke every pending invite for an email address."""
    deleted = (
        db.query(Invite)
        .filter(Invite.email == email, Invite.accepted == False)  # noqa: E712
        .delete(synchronize_session=False)
    )
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No pending invite for {email}",
        )
    db.commit()

    log_action(
        db, current_user.id, "delete_invite",
        details=f"Revoked {deleted} invite(s) for {email}",
        entity_type="invite", entity_id=email,
    )


@router.post(
    "/accept",
    response_model=UserResponse,
    dependencies=[Depends(rate_limit("default"))],
)
async def accept_invite(
    payload: InviteAccept,
    db: Session = Depends(get_db),
):
    """Turn an invite into a user with access to the invited tenant."""
    invite = db.query(Invite).filter(Invite.token == payload.token).first()
    if invite is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid invite token",
        )
    if invite.accepted:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invite has already been accepted",
        )
    if invite.is_expired():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invite has expired",
        )
    if db.query(AppUser).filter(AppUser.email == invite.email).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"User with email {invite.email} already exists",
        )

    user = AppUser(
        id=str(uuid.uuid4()),
        email=invite.email,
        first_name=invite.first_name,
        last_name=invite.last_name,
        role=invite.role,
    )
    db.add(user)
    db.add(UserTenant(
        id=str(uuid.uuid4()),
        user_id=user.id,
        tenant_id=invite.tenant_id,
        granted_by=invite.created_by,
    ))
    invite.accepted = True
    db.commit()
    db.refresh(user)

    log_action(
        db, user.id, "accept_invite", tenant_id=invite.tenant_id,
        details=f"{user.email} joined as {user.role}",
        entity_type="invite", entity_id=invite.id,
    )
    logger.info(f"Invite {invite.id} accepted by {user.email}")

    tenant = db.query(Tenant).filter(Tenant.id == invite.tenant_id).first()
    return UserResponse(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        role=user.role,
        tenants=[UserTenantSummary(id=tenant.id, name=tenant.name)] if tenant else [],
        created_at=user.created_at,
    )
