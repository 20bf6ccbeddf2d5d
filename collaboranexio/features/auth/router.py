"""
Authentication endpoints.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from collaboranexio.core.database import get_db
from collaboranexio.core.rate_limit import rate_limit
from collaboranexio.core.scope import resolve_scope
from collaboranexio.features.auth.dependencies import (
    CurrentPrincipal,
    CurrentUser,
    client_ip,
)
from collaboranexio.features.auth.schemas import (
    LoginRequest,
    LoginResponse,
    RefreshTokenRequest,
    ScopeRead,
    SessionRead,
    TokenResponse,
)
from collaboranexio.features.auth.service import auth_service
from collaboranexio.schemas.common import ApiResponse, MessageResponse
from collaboranexio.schemas.user import UserRead

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


async def _login(db: AsyncSession, request: Request, email: str, password: str) -> LoginResponse:
    user, _, scope = await auth_service.authenticate(
        db,
        email=email,
        password=password,
        ip_address=client_ip(request),
    )
    tokens = auth_service.generate_tokens(user.id)
    return LoginResponse(
        **tokens.model_dump(),
        user=UserRead.model_validate(user),
        scope=ScopeRead.from_scope(scope),
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    dependencies=[Depends(rate_limit("auth"))],
)
async def login(
    request: Request,
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> LoginResponse:
    """
    OAuth2 compatible token login.

    Uses OAuth2PasswordRequestForm (username/password from form data).
    We treat 'username' as email. The body is not wrapped in the response
    envelope so OAuth2 clients can read ``access_token`` directly.
    """
    return await _login(db, request, form_data.username, form_data.password)


@router.post(
    "/login/json",
    response_model=ApiResponse[LoginResponse],
    dependencies=[Depends(rate_limit("auth"))],
)
async def login_json(
    request: Request,
    login_data: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[LoginResponse]:
    """Login with JSON body (alternative to form data)."""
    session = await _login(db, request, login_data.email, login_data.password)
    return ApiResponse(data=session, message="Login successful")


@router.post("/refresh", response_model=ApiResponse[TokenResponse])
async def refresh_token(
    refresh_data: RefreshTokenRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[TokenResponse]:
    """Exchange a refresh token for a new token pair."""
    tokens = await auth_service.refresh_access_token(db, refresh_data.refresh_token)
    return ApiResponse(data=tokens)


@router.get("/me", response_model=ApiResponse[SessionRead])
async def get_current_user_info(
    current_user: CurrentUser,
    principal: CurrentPrincipal,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[SessionRead]:
    """Current user with the companies it can currently access."""
    scope = await resolve_scope(db, principal)
    return ApiResponse(
        data=SessionRead(
            user=UserRead.model_validate(current_user),
            scope=ScopeRead.from_scope(scope),
        )
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    current_user: CurrentUser,
) -> MessageResponse:
    """
    Logout endpoint.

    In JWT-based auth, logout is handled client-side by deleting the token.
    """
    logger.info(f"User logged out: {current_user.id}")
    return MessageResponse(message="Successfully logged out")
