"""
Performance monitoring utilities.
"""

import time
from typing import Any, Callable

import structlog
from fastapi import Request

from collaboranexio.core.metrics import (
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
)

logger = structlog.get_logger(__name__)


class PerformanceMonitor:
    """
    Time a block of work and log its outcome.

    Usage:
        async with PerformanceMonitor("list_tenants", role=principal.role.value):
            ...
    """

    def __init__(self, operation_name: str, **tags: Any):
        self.operation_name = operation_name
        self.tags = tags
        self.start_time: float | None = None
        self.end_time: float | None = None

    async def __aenter__(self) -> "PerformanceMonitor":
        self.start_time = time.time()
        logger.debug(
            "operation_started",
            operation=self.operation_name,
            **self.tags,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.end_time = time.time()
        duration_ms = (self.end_time - self.start_time) * 1000

        if exc_type is None:
            logger.info(
                "operation_completed",
                operation=self.operation_name,
                duration_ms=round(duration_ms, 2),
                **self.tags,
            )
        else:
            logger.warning(
                "operation_failed",
                operation=self.operation_name,
                duration_ms=round(duration_ms, 2),
                error=str(exc_val),
                **self.tags,
            )

    @property
    def duration_ms(self) -> float | None:
        """Get duration in milliseconds."""
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time) * 1000
        return None


async def track_http_metrics(request: Request, call_next: Callable):
    """
    Middleware to track HTTP metrics.

    Records:
    - Request count by endpoint and status
    - Request duration histogram
    - Requests in progress gauge
    """
    # Extract endpoint (strip query params for cardinality)
    endpoint = request.url.path
    method = request.method

    http_requests_in_progress.labels(method=method, endpoint=endpoint).inc()

    start_time = time.time()

    try:
        response = await call_next(request)

        duration = time.time() - start_time

        http_request_duration_seconds.labels(
            method=method,
            endpoint=endpoint,
        ).observe(duration)

        http_requests_total.labels(
            method=method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()

        return response

    finally:
        http_requests_in_progress.labels(method=method, endpoint=endpoint).dec()
