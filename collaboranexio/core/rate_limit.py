"""
Fixed-window rate limiting using Redis counters.

Applied to the login endpoints to slow down credential guessing.
"""

import logging
from dataclasses import dataclass

from fastapi import HTTPException, Request, status
from redis.exceptions import RedisError

from collaboranexio.config import settings
from collaboranexio.core.metrics import login_attempts_total
from collaboranexio.core.redis_client import redis_manager

logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    """Configuration for a rate limit rule."""

    requests: int     # Max requests
    window: int       # Time window in seconds
    key_prefix: str   # Key prefix for namespacing


RATE_LIMITS = {
    "auth": RateLimitConfig(
        requests=settings.login_attempts_per_window,
        window=settings.login_window_seconds,
        key_prefix="rl_auth",
    ),
}


async def check_rate_limit(identifier: str, limit_type: str = "auth") -> dict:
    """
    Count a request against ``identifier`` and reject it past the limit.

    Fails open when Redis is unavailable or not initialized.

    Raises:
        HTTPException: 429 if rate limit exceeded
    """
    config = RATE_LIMITS[limit_type]
    key = f"{identifier}:{limit_type}"

    try:
        current_count = await redis_manager.increment(
            namespace=config.key_prefix,
            key=key,
            ttl=config.window,
        )
        ttl = await redis_manager.get_ttl(config.key_prefix, key)
    except (RedisError, RuntimeError) as e:
        logger.error(f"Rate limit check skipped, redis unavailable: {e}")
        return {"limit": config.requests, "remaining": config.requests, "reset": 0}

    if current_count > config.requests:
        logger.warning(
            f"Rate limit exceeded: {identifier} ({limit_type}) "
            f"{current_count}/{config.requests}"
        )
        login_attempts_total.labels(result="throttled").inc()

        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many login attempts. Try again later.",
            headers={
                "X-RateLimit-Limit": str(config.requests),
                "X-RateLimit-Remaining": "0",
                "Retry-After": str(max(ttl, 0)),
            },
        )

    return {
        "limit": config.requests,
        "remaining": max(0, config.requests - current_count),
        "reset": ttl,
    }


def rate_limit(limit_type: str = "auth"):
    """
    Rate limiting dependency factory keyed by client IP.

    Usage:
        @router.post("/login")
        async def login(_: dict = Depends(rate_limit("auth"))):
            ...
    """
    async def dependency(request: Request) -> dict:
        if not settings.rate_limit_enabled:
            return {}
        identifier = request.client.host if request.client else "unknown"
        return await check_rate_limit(identifier, limit_type)

    return dependency
