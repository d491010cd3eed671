"""Bearer token authentication and role checks.

Tokens are issued by the identity front door and verified here with the
shared HS256 secret. This module only reads tokens; it never issues
sessions or handles passwords.

Features:
- JWT access token validation
- User extraction from JWT claims
- Role-based access control helpers
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from app.core.config import get_settings

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

TOKEN_ISSUER = "cyber-risk-dashboard"
TOKEN_AUDIENCE = "cyber-risk-api"

# Application roles
ROLE_ADMIN = "admin"
ROLE_ANALYST = "analyst"
ROLE_ANALYST_NOTES = "analyst_notes"
ROLE_ACCOUNT_MANAGER = "account_manager"
ROLE_USER = "user"

VALID_ROLES = (
    ROLE_ADMIN,
    ROLE_ANALYST,
    ROLE_ANALYST_NOTES,
    ROLE_ACCOUNT_MANAGER,
    ROLE_USER,
)


class User(BaseModel):
    """Authenticated user model."""

    id: str
    email: str | None = None
    name: str | None = None
    roles: list[str] = []
    tenant_ids: list[str] = []
    is_active: bool = True

    @property
    def is_admin(self) -> bool:
        return ROLE_ADMIN in self.roles

    def has_role(self, role: str) -> bool:
        """Check if user has a specific role."""
        return role in self.roles or self.is_admin

    def has_access_to_tenant(self, tenant_id: str) -> bool:
        """Check if the token itself grants access to a tenant."""
        return self.is_admin or tenant_id in self.tenant_ids


class JWTTokenManager:
    """Encode and decode access tokens signed with the shared secret."""

    def __init__(self) -> None:
        self.settings = get_settings()

    def create_access_token(
        self,
        user_id: str,
        email: str | None = None,
        name: str | None = None,
        roles: list[str] | None = None,
        tenant_ids: list[str] | None = None,
        expires_delta: timedelta | None = None,
    ) -> str:
        """Create a new JWT access token.

        Used by service-to-service callers and by the test suite.
        """
        if expires_delta is None:
            expires_delta = timedelta(minutes=self.settings.jwt_access_token_expire_minutes)

        now = datetime.now(timezone.utc)
        to_encode = {
            "sub": user_id,
            "email": email,
            "name": name,
            "roles": roles or [ROLE_USER],
            "tenant_ids": tenant_ids or [],
            "exp": now + expires_delta,
            "iat": now,
            "iss": TOKEN_ISSUER,
            "aud": TOKEN_AUDIENCE,
            "type": "access",
        }

        return jwt.encode(
            to_encode,
            self.settings.jwt_secret_key,
            algorithm=self.settings.jwt_algorithm,
        )

    def decode_token(self, token: str) -> dict[str, Any]:
        """Decode and validate a JWT token.

        Raises:
            HTTPException: If token is invalid or expired
        """
        try:
            return jwt.decode(
                token,
                self.settings.jwt_secret_key,
                algorithms=[self.settings.jwt_algorithm],
                audience=TOKEN_AUDIENCE,
                issuer=TOKEN_ISSUER,
            )
        except JWTError as e:
            logger.warning(f"Token decode failed: {e}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Invalid token: {e}",
                headers={"WWW-Authenticate": "Bearer"},
            )


jwt_manager = JWTTokenManager()


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> User:
    """Dependency to get the current authenticated user.

    Raises:
        HTTPException: 401 if the bearer token is missing or invalid
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    payload = jwt_manager.decode_token(credentials.credentials)

    user_id = payload.get("sub")
    if user_id is None:
        raise credentials_exception

    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = User(
        id=user_id,
        email=payload.get("email"),
        name=payload.get("name"),
        roles=payload.get("roles", [ROLE_USER]),
        tenant_ids=payload.get("tenant_ids", []),
    )
    request.state.user_id = user.id
    return user


def require_roles(required_roles: list[str]):
    """Dependency factory to require specific roles.

    Admins pass every role check.

    Usage:
        @router.get("/admin-only")
        async def admin_endpoint(user: User = Depends(require_roles(["admin"]))):
            ...
    """
    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.is_admin:
            return current_user

        if not any(role in current_user.roles for role in required_roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Required roles: {', '.join(required_roles)}",
            )
        return current_user

    return role_checker


require_admin = require_roles([ROLE_ADMIN])
