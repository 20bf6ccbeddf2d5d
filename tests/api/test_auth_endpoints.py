"""
API tests for authentication endpoints.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.api
class TestLogin:
    """Test login endpoints."""

    async def test_form_login_returns_tokens(self, client: AsyncClient, admin, tenant_a, tenant_b):
        response = await client.post(
            "/api/v1/auth/login",
            data={"username": "admin@example.com", "password": "Admin123!"},
        )

        assert response.status_code == 200
        data = response.json()

        assert data["token_type"] == "bearer"
        assert "access_token" in data
        assert "refresh_token" in data
        assert data["user"]["email"] == "admin@example.com"
        assert "hashed_password" not in data["user"]
        assert data["scope"]["unrestricted"] is False
        assert sorted(data["scope"]["tenant_ids"]) == sorted([tenant_a.id, tenant_b.id])

    async def test_wrong_password(self, client: AsyncClient, regular_user):
        response = await client.post(
            "/api/v1/auth/login",
            data={"username": "user@example.com", "password": "WrongPassword1"},
        )

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Incorrect email or password"

    async def test_json_login_is_enveloped(self, client: AsyncClient, super_admin):
        response = await client.post(
            "/api/v1/auth/login/json",
            json={"email": "root@example.com", "password": "Root1234!"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["user"]["role"] == "super_admin"
        assert body["data"]["scope"] == {"unrestricted": True, "tenant_ids": []}

    async def test_json_login_invalid_email(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/login/json",
            json={"email": "not-an-email", "password": "Whatever1"},
        )

        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["field"] == "email"


@pytest.mark.api
class TestSession:

    async def test_me_reports_scope(self, manager_client: AsyncClient, manager, tenant_a):
        response = await manager_client.get("/api/v1/auth/me")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["user"]["id"] == manager.id
        assert data["scope"]["tenant_ids"] == [tenant_a.id]

    async def test_me_requires_token(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/me")

        assert response.status_code == 401
        assert response.json()["success"] is False

    async def test_invalid_token(self, client: AsyncClient):
        response = await client.get(
            "/api/v1/auth/me",
            headers={"Authorization": "Bearer invalid_token"},
        )
        assert response.status_code == 401

    async def test_deactivated_user_is_locked_out(self, user_client: AsyncClient, regular_user, db_session):
        regular_user.is_active = False
        await db_session.commit()

        response = await user_client.get("/api/v1/auth/me")
        assert response.status_code == 403

    async def test_refresh(self, client: AsyncClient, regular_user):
        login = await client.post(
            "/api/v1/auth/login",
            data={"username": "user@example.com", "password": "User1234!"},
        )
        refresh_token = login.json()["refresh_token"]

        response = await client.post(
            "/api/v1/auth/refresh",
            json={"refresh_token": refresh_token},
        )

        assert response.status_code == 200
        assert "access_token" in response.json()["data"]

    async def test_logout(self, user_client: AsyncClient):
        response = await user_client.post("/api/v1/auth/logout")

        assert response.status_code == 200
        assert response.json()["success"] is True
