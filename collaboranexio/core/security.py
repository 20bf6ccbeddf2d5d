"""
Security utilities for authentication.

Provides:
- Password hashing and verification (bcrypt)
- JWT token generation and validation

Tokens carry only the user id. Role and tenant scope are re-read from the
database on every request so that a revoked assignment takes effect on the
caller's very next request.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from collaboranexio.config import settings

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        Bcrypt hashed password
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """
    Verify a password against a hash.

    Accounts created without a password (pending first login) never verify.
    """
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def _create_token(
    subject: str | dict[str, Any],
    token_type: str,
    expires_delta: timedelta,
) -> str:
    now = datetime.now(timezone.utc)

    if isinstance(subject, dict):
        to_encode = subject.copy()
    else:
        to_encode = {"sub": str(subject)}

    to_encode.update({
        "exp": now + expires_delta,
        "iat": now,
        "type": token_type,
    })

    return jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.algorithm
    )


def create_access_token(
    subject: str | dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        subject: User ID or custom claims dictionary
        expires_delta: Token expiration time (default: from settings)
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    return _create_token(subject, "access", expires_delta)


def create_refresh_token(
    subject: str | dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT refresh token (default lifetime from settings)."""
    if expires_delta is None:
        expires_delta = timedelta(days=settings.refresh_token_expire_days)
    return _create_token(subject, "refresh", expires_delta)


def decode_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a JWT token.

    Raises:
        JWTError: If token is invalid or expired
    """
    try:
        return jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm]
        )
    except JWTError as e:
        logger.warning(f"JWT decode error: {e}")
        raise
