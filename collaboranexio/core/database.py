"""
Database session management with async SQLAlchemy 2.0.

Provides:
- Async engine with connection pooling
- Session factory with proper lifecycle
- Dependency injection for route handlers
- Transaction boundary for mutating service operations
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from collaboranexio.config import settings
from collaboranexio.core.exceptions import ConflictError, StorageError

logger = logging.getLogger(__name__)


# Base class for all ORM models
class Base(DeclarativeBase):
    """
    Base class for all database models.

    Provides:
    - Common metadata for all tables
    - Type hints for SQLAlchemy
    """
    pass


class DatabaseManager:
    """
    Manages database engine and session lifecycle.

    Singleton pattern ensures one engine per application.
    """

    def __init__(self) -> None:
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    def init(self) -> None:
        """
        Initialize database engine and session factory.

        Called during application startup (lifespan event).
        """
        logger.info("Initializing database connection...")

        engine_kwargs: dict = {
            "echo": settings.db_echo and settings.is_development,
            "pool_pre_ping": True,  # Verify connections before using
        }
        if settings.is_development or settings.database_url.startswith("sqlite"):
            engine_kwargs["poolclass"] = NullPool
        else:
            engine_kwargs["pool_size"] = settings.db_pool_size
            engine_kwargs["max_overflow"] = settings.db_max_overflow

        self._engine = create_async_engine(settings.database_url, **engine_kwargs)

        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,  # Don't expire objects after commit
            autoflush=False,  # Manual control over flushes
        )

        logger.info("Database connection initialized successfully")

    async def close(self) -> None:
        """
        Close database connections.

        Called during application shutdown (lifespan event).
        """
        if self._engine:
            logger.info("Closing database connections...")
            await self._engine.dispose()
            logger.info("Database connections closed")

    @property
    def engine(self) -> AsyncEngine:
        """Get the database engine."""
        if not self._engine:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._engine

    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Dependency injection for database sessions.

        Yields:
            AsyncSession: Database session with automatic cleanup
        """
        if not self._session_factory:
            raise RuntimeError("Database not initialized. Call init() first.")

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()  # Auto-commit on success
            except Exception:
                await session.rollback()  # Auto-rollback on error
                raise
            finally:
                await session.close()


# Global instance
db_manager = DatabaseManager()


# Convenience function for dependency injection
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions.

    Usage:
        from collaboranexio.core.database import get_db

        @router.get("/companies")
        async def list_companies(db: AsyncSession = Depends(get_db)):
            ...
    """
    async for session in db_manager.get_session():
        yield session


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """
    Run a block of writes as one transaction.

    Commits when the block exits cleanly; otherwise rolls back everything
    flushed inside it. Integrity violations surface as ``ConflictError``,
    any other database failure as ``StorageError``; domain errors raised in
    the block propagate unchanged.

    Usage:
        async with atomic(db):
            db.add(tenant)
            await db.flush()
            await audit_service.record(db, ...)
    """
    try:
        yield db
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"Integrity violation, transaction rolled back: {e.orig}")
        raise ConflictError("Resource already exists") from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error, transaction rolled back: {e}")
        raise StorageError("Database operation failed") from e
    except Exception:
        await db.rollback()
        raise
