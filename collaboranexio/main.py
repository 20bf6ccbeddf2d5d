"""
FastAPI application factory.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from starlette.exceptions import HTTPException as StarletteHTTPException

from collaboranexio.config import settings
from collaboranexio.core.database import db_manager
from collaboranexio.core.error_tracking import error_tracker
from collaboranexio.core.exceptions import CollaboraNexioException, StorageError
from collaboranexio.core.logging_config import get_logger, setup_logging
from collaboranexio.core.middleware import RequestContextMiddleware
from collaboranexio.core.performance import track_http_metrics
from collaboranexio.core.redis_client import redis_manager
from collaboranexio.schemas.common import ErrorDetail, ErrorResponse

# Setup logging first
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan events."""
    logger.info(
        "application_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    db_manager.init()
    try:
        await redis_manager.init()
    except (RedisError, OSError) as e:
        # Login rate limiting fails open until redis comes back
        logger.warning("redis_unavailable", error=str(e))

    from collaboranexio.core.metrics import app_info
    app_info.info({
        "version": settings.app_version,
        "environment": settings.environment,
    })

    logger.info("application_ready")

    yield

    logger.info("application_shutting_down")
    await db_manager.close()
    await redis_manager.close()
    logger.info("application_shutdown_complete")


def _error_response(
    status_code: int,
    message: str,
    field: str | None = None,
    errors: list[ErrorDetail] | None = None,
    details: dict | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        message=message,
        field=field,
        errors=errors or [],
        details=details or {},
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json"),
        headers=headers,
    )


def create_application() -> FastAPI:
    """Application factory."""

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Multi-tenant collaboration platform: companies, users and access scopes",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    # Middleware (order matters - last added = outermost)

    @app.middleware("http")
    async def performance_middleware(request: Request, call_next):
        return await track_http_metrics(request, call_next)

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers

    @app.exception_handler(CollaboraNexioException)
    async def domain_exception_handler(
        request: Request,
        exc: CollaboraNexioException,
    ) -> JSONResponse:
        field = getattr(exc, "field", None)

        if isinstance(exc, StorageError):
            logger.error(
                "storage_error",
                path=request.url.path,
                error=exc.message,
                exc_info=exc,
            )
            error_tracker.capture_exception(
                exc,
                context={
                    "request_id": getattr(request.state, "request_id", "unknown"),
                    "path": request.url.path,
                    "method": request.method,
                },
            )
        else:
            logger.warning(
                "request_rejected",
                path=request.url.path,
                error_type=type(exc).__name__,
                error=exc.message,
                field=field,
            )

        return _error_response(
            exc.status_code,
            exc.message,
            field=field,
            details=exc.details,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request,
        exc: StarletteHTTPException,
    ) -> JSONResponse:
        return _error_response(
            exc.status_code,
            str(exc.detail),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        logger.warning(
            "validation_error",
            path=request.url.path,
            errors=exc.errors(),
        )

        errors = [
            ErrorDetail(
                field=".".join(str(part) for part in error["loc"][1:]) or str(error["loc"][0]),
                message=error["msg"],
                type=error["type"],
            )
            for error in exc.errors()
        ]
        return _error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Validation failed",
            field=errors[0].field if errors else None,
            errors=errors,
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Global exception handler with error tracking."""

        request_id = getattr(request.state, "request_id", "unknown")

        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )

        error_tracker.capture_exception(
            exc,
            context={
                "request_id": request_id,
                "path": request.url.path,
                "method": request.method,
            }
        )

        if settings.is_production:
            message = "An internal error occurred. Please contact support."
        else:
            message = str(exc)

        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            message,
            details={"request_id": request_id},
        )

    # Register routers
    from collaboranexio.api.health_router import router as health_router
    from collaboranexio.api.metrics_router import router as metrics_router
    from collaboranexio.api.v1.router import v1_router

    # Health endpoints (no prefix)
    app.include_router(health_router)

    if settings.metrics_enabled:
        app.include_router(metrics_router)

    app.include_router(v1_router, prefix="/api")

    @app.get("/", tags=["Root"])
    async def root() -> dict:
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "environment": settings.environment,
            "docs": "/docs" if settings.is_development else "Disabled in production",
            "health": "/health",
            "metrics": "/metrics" if settings.metrics_enabled else "Disabled",
        }

    logger.info("application_configured")
    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "collaboranexio.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload and settings.is_development,
        log_level=settings.log_level.lower(),
        access_log=False,  # We handle logging ourselves
    )
