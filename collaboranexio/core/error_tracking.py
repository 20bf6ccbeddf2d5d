"""
Error tracking and reporting.

Forwards unexpected failures (unhandled exceptions, StorageError) to Sentry
when enabled; otherwise logs them locally. Validation and authorization
errors are expected outcomes and are never reported here.
"""

from typing import Any

import sentry_sdk
import structlog
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from collaboranexio.config import settings

logger = structlog.get_logger(__name__)


class ErrorTracker:
    """Error tracking interface backed by sentry-sdk."""

    def __init__(self, enabled: bool = False, dsn: str | None = None):
        self.enabled = bool(enabled and dsn)
        self.dsn = dsn

        if self.enabled:
            self._init_sentry(dsn)

    def _init_sentry(self, dsn: str) -> None:
        """Initialize Sentry SDK."""
        sentry_sdk.init(
            dsn=dsn,
            environment=settings.environment,
            release=settings.app_version,
            traces_sample_rate=settings.sentry_traces_sample_rate,
            send_default_pii=False,
            integrations=[
                FastApiIntegration(),
                SqlalchemyIntegration(),
            ],
        )
        logger.info("sentry_initialized")

    def capture_exception(
        self,
        exception: Exception,
        context: dict[str, Any] | None = None,
    ) -> str | None:
        """
        Capture and report an exception.

        Args:
            exception: The exception to report
            context: Additional context (request id, path, ...)

        Returns:
            Event ID from error tracker (or None)
        """
        if not self.enabled:
            logger.error(
                "exception_captured",
                exception=str(exception),
                exception_type=type(exception).__name__,
                context=context,
            )
            return None

        with sentry_sdk.new_scope() as scope:
            for key, value in (context or {}).items():
                scope.set_extra(key, value)
            return sentry_sdk.capture_exception(exception)


error_tracker = ErrorTracker(
    enabled=settings.sentry_enabled,
    dsn=settings.sentry_dsn,
)
