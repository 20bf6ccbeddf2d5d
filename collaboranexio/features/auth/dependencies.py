"""
Authentication dependencies for dependency injection.
"""

import logging
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from collaboranexio.core.context import set_request_context
from collaboranexio.core.database import get_db
from collaboranexio.core.exceptions import forbidden, unauthorized
from collaboranexio.core.scope import Principal
from collaboranexio.core.security import decode_token
from collaboranexio.models.user import User, UserRole

logger = logging.getLogger(__name__)

# Security schemes
bearer_scheme = HTTPBearer(auto_error=False)


def client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


async def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    Get current authenticated user from a JWT bearer token.

    The user row is re-read on every request so role changes and
    deactivation apply immediately.
    """
    if not credentials:
        raise unauthorized("Authentication required")

    try:
        payload = decode_token(credentials.credentials)
    except JWTError as e:
        logger.warning(f"JWT decode error: {e}")
        raise unauthorized("Invalid or expired token")

    if payload.get("type") != "access":
        raise unauthorized("Invalid token type. Use access token.")

    user_id: str | None = payload.get("sub")
    if not user_id:
        raise unauthorized("Invalid token payload")

    user = await db.get(User, user_id)
    if user is None:
        logger.warning(f"Token valid but user not found: {user_id}")
        raise unauthorized("User not found")

    if not user.is_active:
        raise forbidden("User account is inactive")

    request.state.user_id = user.id
    request.state.role = user.role
    set_request_context(user_id=user.id, role=user.role)

    return user


async def get_current_principal(
    request: Request,
    current_user: Annotated[User, Depends(get_current_user)],
) -> Principal:
    """The authenticated caller as passed to services."""
    return Principal.from_user(current_user, ip_address=client_ip(request))


def require_role(*roles: UserRole):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.get("/audit-logs/")
        async def list_audit_logs(
            principal: Principal = Depends(require_role(UserRole.ADMIN, UserRole.SUPER_ADMIN))
        ):
            ...
    """
    async def role_checker(
        principal: Annotated[Principal, Depends(get_current_principal)],
    ) -> Principal:
        if principal.role not in roles:
            raise forbidden(
                "Role required: " + " or ".join(role.value for role in roles)
            )
        return principal

    return role_checker


# Type aliases for cleaner code
CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
