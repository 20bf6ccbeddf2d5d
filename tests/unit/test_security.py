"""
Unit tests for security utilities.

Tests password hashing, JWT generation, and token validation.
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import JWTError

from collaboranexio.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)


@pytest.mark.unit
class TestPasswordHashing:
    """Test password hashing and verification."""

    def test_hash_password(self):
        password = "TestPassword123!"
        hashed = hash_password(password)

        assert hashed != password
        assert hashed.startswith("$2b$")  # Bcrypt prefix

    def test_verify_password_success(self):
        hashed = hash_password("TestPassword123!")

        assert verify_password("TestPassword123!", hashed) is True

    def test_verify_password_failure(self):
        hashed = hash_password("TestPassword123!")

        assert verify_password("WrongPassword123!", hashed) is False

    def test_missing_hash_never_verifies(self):
        """Accounts without a password cannot log in."""
        assert verify_password("anything", None) is False
        assert verify_password("anything", "") is False

    def test_different_hashes_for_same_password(self):
        """Salted hashes differ but both verify."""
        hash1 = hash_password("TestPassword123!")
        hash2 = hash_password("TestPassword123!")

        assert hash1 != hash2
        assert verify_password("TestPassword123!", hash1) is True
        assert verify_password("TestPassword123!", hash2) is True


@pytest.mark.unit
class TestJWTTokens:
    """Test JWT token generation and validation."""

    def test_access_token_carries_only_user_id(self):
        token = create_access_token(subject="user-123")
        payload = decode_token(token)

        assert payload["sub"] == "user-123"
        assert payload["type"] == "access"
        assert set(payload) == {"sub", "exp", "iat", "type"}

    def test_create_refresh_token(self):
        payload = decode_token(create_refresh_token(subject="user-123"))

        assert payload["sub"] == "user-123"
        assert payload["type"] == "refresh"

    def test_token_expiration_in_future(self):
        payload = decode_token(create_access_token(subject="user-123"))

        exp_time = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
        assert exp_time > datetime.now(timezone.utc)

    def test_custom_expiration(self):
        token = create_access_token(
            subject="user-123",
            expires_delta=timedelta(minutes=5),
        )

        payload = decode_token(token)
        duration = payload["exp"] - payload["iat"]
        assert 4 * 60 <= duration <= 6 * 60

    def test_expired_token_rejected(self):
        token = create_access_token(
            subject="user-123",
            expires_delta=timedelta(seconds=-10),
        )

        with pytest.raises(JWTError):
            decode_token(token)

    def test_decode_invalid_token(self):
        with pytest.raises(JWTError):
            decode_token("invalid.token.here")
