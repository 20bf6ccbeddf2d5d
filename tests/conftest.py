"""
Pytest fixtures for all tests.

Provides:
- Test database with automatic cleanup (async SQLite by default)
- HTTP client bound to the app with the test session
- Users of every role with their company associations
- Principals and tokens for those users
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("SENTRY_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from collaboranexio.core.database import Base, get_db
from collaboranexio.core.scope import Principal
from collaboranexio.core.security import create_access_token
from collaboranexio.main import create_application
from collaboranexio.models import Tenant, User, UserRole

from tests.factories import TenantFactory, UserFactory

# In-memory SQLite unless a real database is provided
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite://")


@pytest_asyncio.fixture(scope="function")
async def test_db_engine():
    """
    Create test database engine with a fresh schema per test.

    In-memory SQLite needs a single shared connection (StaticPool).
    """
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine = create_async_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_async_engine(TEST_DATABASE_URL, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_db_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Database session for a test.

    Services commit their own transactions, so isolation comes from
    recreating the schema for every test.
    """
    session_factory = async_sessionmaker(
        test_db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def app(db_session: AsyncSession):
    """FastAPI test application using the test session."""
    application = create_application()

    async def override_get_db():
        yield db_session

    application.dependency_overrides[get_db] = override_get_db

    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client for testing API endpoints.

    Usage:
        async def test_endpoint(client):
            response = await client.get("/api/v1/companies/")
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# Companies
@pytest_asyncio.fixture
async def tenant_a(db_session: AsyncSession) -> Tenant:
    return await TenantFactory.create(db_session, denominazione="Alfa S.r.l.")


@pytest_asyncio.fixture
async def tenant_b(db_session: AsyncSession) -> Tenant:
    return await TenantFactory.create(db_session, denominazione="Beta S.p.A.")


@pytest_asyncio.fixture
async def tenant_c(db_session: AsyncSession) -> Tenant:
    return await TenantFactory.create(db_session, denominazione="Gamma S.n.c.")


# Users of every role
@pytest_asyncio.fixture
async def super_admin(db_session: AsyncSession) -> User:
    return await UserFactory.create(
        db_session,
        role=UserRole.SUPER_ADMIN,
        email="root@example.com",
        password="Root1234!",
    )


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession, tenant_a: Tenant, tenant_b: Tenant) -> User:
    """Admin assigned to companies A and B."""
    return await UserFactory.create(
        db_session,
        role=UserRole.ADMIN,
        tenant_ids=[tenant_a.id, tenant_b.id],
        email="admin@example.com",
        password="Admin123!",
    )


@pytest_asyncio.fixture
async def manager(db_session: AsyncSession, tenant_a: Tenant) -> User:
    return await UserFactory.create(
        db_session,
        role=UserRole.MANAGER,
        tenant=tenant_a,
        email="manager@example.com",
        password="Manager123!",
    )


@pytest_asyncio.fixture
async def regular_user(db_session: AsyncSession, tenant_a: Tenant) -> User:
    return await UserFactory.create(
        db_session,
        role=UserRole.USER,
        tenant=tenant_a,
        email="user@example.com",
        password="User1234!",
    )


# Principals
@pytest.fixture
def super_admin_principal(super_admin: User) -> Principal:
    return Principal.from_user(super_admin)


@pytest.fixture
def admin_principal(admin: User) -> Principal:
    return Principal.from_user(admin)


@pytest.fixture
def manager_principal(manager: User) -> Principal:
    return Principal.from_user(manager)


@pytest.fixture
def user_principal(regular_user: User) -> Principal:
    return Principal.from_user(regular_user)


# Authenticated HTTP clients
def _auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(subject=user.id)}"}


@pytest_asyncio.fixture
async def super_admin_client(client: AsyncClient, super_admin: User) -> AsyncClient:
    client.headers.update(_auth_headers(super_admin))
    return client


@pytest_asyncio.fixture
async def admin_client(client: AsyncClient, admin: User) -> AsyncClient:
    client.headers.update(_auth_headers(admin))
    return client


@pytest_asyncio.fixture
async def manager_client(client: AsyncClient, manager: User) -> AsyncClient:
    client.headers.update(_auth_headers(manager))
    return client


@pytest_asyncio.fixture
async def user_client(client: AsyncClient, regular_user: User) -> AsyncClient:
    client.headers.update(_auth_headers(regular_user))
    return client
