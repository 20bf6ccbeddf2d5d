"""
Authentication business logic.
"""

from datetime import datetime, timezone

from jose import JWTError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from collaboranexio.config import settings
from collaboranexio.core.database import atomic
from collaboranexio.core.exceptions import AuthenticationError
from collaboranexio.core.logging_config import get_logger
from collaboranexio.core.metrics import login_attempts_total
from collaboranexio.core.scope import Principal, Scope, resolve_scope
from collaboranexio.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    verify_password,
)
from collaboranexio.features.audit.service import audit_service
from collaboranexio.features.auth.schemas import TokenResponse
from collaboranexio.models.audit_log import AuditAction
from collaboranexio.models.user import User

logger = get_logger(__name__)

INVALID_CREDENTIALS = "Incorrect email or password"


class AuthService:
    """Authentication service with business logic."""

    @staticmethod
    async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
        result = await db.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def authenticate(
        db: AsyncSession,
        email: str,
        password: str,
        ip_address: str | None = None,
    ) -> tuple[User, Principal, Scope]:
        """
        Verify credentials and open a session.

        Args:
            db: Database session
            email: User email (case-insensitive)
            password: Plain text password
            ip_address: Client address, recorded in the audit log

        Returns:
            The user, its principal and its resolved scope

        Raises:
            AuthenticationError: unknown email, wrong password or inactive account
        """
        user = await AuthService.get_user_by_email(db, email)

        if user is None:
            login_attempts_total.labels(result="failure").inc()
            logger.warning("login_failed", reason="unknown_email")
            raise AuthenticationError(INVALID_CREDENTIALS)

        if not verify_password(password, user.hashed_password):
            login_attempts_total.labels(result="failure").inc()
            logger.warning("login_failed", reason="bad_password", user_id=user.id)
            raise AuthenticationError(INVALID_CREDENTIALS)

        if not user.is_active:
            login_attempts_total.labels(result="failure").inc()
            logger.warning("login_failed", reason="inactive", user_id=user.id)
            raise AuthenticationError("Account is inactive")

        principal = Principal.from_user(user, ip_address=ip_address)
        async with atomic(db):
            user.last_login_at = datetime.now(timezone.utc)
            await db.flush()
            await audit_service.record(
                db,
                principal,
                AuditAction.LOGIN,
                "user",
                user.id,
                "Login",
            )

        scope = await resolve_scope(db, principal)

        login_attempts_total.labels(result="success").inc()
        logger.info("login_succeeded", user_id=user.id, role=principal.role.value)
        return user, principal, scope

    @staticmethod
    def generate_tokens(user_id: str) -> TokenResponse:
        """
        Generate access and refresh tokens for a user.

        Tokens carry the user id only; role and scope are read per request.
        """
        access_token = create_access_token(subject=user_id)
        refresh_token = create_refresh_token(subject=user_id)

        return TokenResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="bearer",
            expires_in=settings.access_token_expire_minutes * 60,
        )

    @staticmethod
    async def refresh_access_token(
        db: AsyncSession,
        refresh_token: str,
    ) -> TokenResponse:
        """
        Generate a new token pair from a refresh token.

        Raises:
            AuthenticationError: invalid token, or user gone or inactive
        """
        try:
            payload = decode_token(refresh_token)
        except JWTError:
            raise AuthenticationError("Invalid refresh token")

        if payload.get("type") != "refresh":
            raise AuthenticationError("Invalid token type")

        user_id = payload.get("sub")
        if not user_id:
            raise AuthenticationError("Invalid token payload")

        # Verify user still exists and is active
        user = await db.get(User, user_id)
        if user is None or not user.is_active:
            raise AuthenticationError("User not found or inactive")

        return AuthService.generate_tokens(user_id)


# Singleton instance
auth_service = AuthService()
