"""
Integration tests for authentication service.
"""

import pytest
from sqlalchemy import select

from collaboranexio.core.exceptions import AuthenticationError
from collaboranexio.core.scope import UNRESTRICTED
from collaboranexio.core.security import create_access_token, decode_token
from collaboranexio.features.auth.service import auth_service
from collaboranexio.models import AuditLog, UserRole
from tests.factories import UserFactory


@pytest.mark.integration
class TestAuthenticate:
    """Test credential checks and session opening."""

    async def test_success_returns_scope(self, db_session, admin, tenant_a, tenant_b):
        user, principal, scope = await auth_service.authenticate(
            db_session,
            email="admin@example.com",
            password="Admin123!",
            ip_address="203.0.113.7",
        )

        assert user.id == admin.id
        assert principal.role == UserRole.ADMIN
        assert principal.ip_address == "203.0.113.7"
        assert scope == frozenset({tenant_a.id, tenant_b.id})

    async def test_email_is_case_insensitive(self, db_session, regular_user):
        user, _, _ = await auth_service.authenticate(
            db_session, email="  USER@Example.com ", password="User1234!"
        )
        assert user.id == regular_user.id

    async def test_super_admin_scope_is_unrestricted(self, db_session, super_admin):
        _, _, scope = await auth_service.authenticate(
            db_session, email="root@example.com", password="Root1234!"
        )
        assert scope is UNRESTRICTED

    async def test_records_last_login_and_audit(self, db_session, manager):
        assert manager.last_login_at is None

        await auth_service.authenticate(
            db_session, email="manager@example.com", password="Manager123!", ip_address="10.0.0.1"
        )

        await db_session.refresh(manager)
        assert manager.last_login_at is not None

        result = await db_session.execute(
            select(AuditLog).where(AuditLog.actor_user_id == manager.id)
        )
        entry = result.scalar_one()
        assert entry.action == "login"
        assert entry.ip_address == "10.0.0.1"

    async def test_wrong_password(self, db_session, regular_user):
        with pytest.raises(AuthenticationError) as exc_info:
            await auth_service.authenticate(
                db_session, email="user@example.com", password="WrongPassword1"
            )
        assert exc_info.value.message == "Incorrect email or password"

    async def test_unknown_email_same_message(self, db_session):
        with pytest.raises(AuthenticationError) as exc_info:
            await auth_service.authenticate(
                db_session, email="nobody@example.com", password="Whatever1"
            )
        assert exc_info.value.message == "Incorrect email or password"

    async def test_inactive_account(self, db_session, tenant_a):
        await UserFactory.create(
            db_session,
            role=UserRole.USER,
            tenant=tenant_a,
            email="inactive@example.com",
            password="Inactive1",
            is_active=False,
        )

        with pytest.raises(AuthenticationError) as exc_info:
            await auth_service.authenticate(
                db_session, email="inactive@example.com", password="Inactive1"
            )
        assert "inactive" in exc_info.value.message


@pytest.mark.integration
class TestTokens:

    def test_generate_tokens(self):
        tokens = auth_service.generate_tokens("user-1")

        assert tokens.token_type == "bearer"
        assert decode_token(tokens.access_token)["sub"] == "user-1"
        assert decode_token(tokens.refresh_token)["type"] == "refresh"

    async def test_refresh(self, db_session, regular_user):
        tokens = auth_service.generate_tokens(regular_user.id)

        refreshed = await auth_service.refresh_access_token(db_session, tokens.refresh_token)
        assert decode_token(refreshed.access_token)["sub"] == regular_user.id

    async def test_refresh_rejects_access_token(self, db_session, regular_user):
        with pytest.raises(AuthenticationError):
            await auth_service.refresh_access_token(
                db_session, create_access_token(subject=regular_user.id)
            )

    async def test_refresh_rejects_garbage(self, db_session):
        with pytest.raises(AuthenticationError):
            await auth_service.refresh_access_token(db_session, "not-a-jwt")

    async def test_refresh_rejects_inactive_user(self, db_session, regular_user):
        tokens = auth_service.generate_tokens(regular_user.id)
        regular_user.is_active = False
        await db_session.commit()

        with pytest.raises(AuthenticationError):
            await auth_service.refresh_access_token(db_session, tokens.refresh_token)
