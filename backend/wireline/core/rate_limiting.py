"""Rate limiting configuration for FastAPI endpoints.

Uses slowapi with Redis backend for distributed rate limiting.
Falls back to in-memory storage if Redis is unavailable.
"""

import redis
from slowapi import Limiter
from slowapi.util import get_remote_address

from wireline.core.config import settings


def _get_redis_url() -> str | None:
    """Get Redis URL if available and rate limiting is enabled."""
    if not settings.RATE_LIMIT_ENABLED:
        return None

    try:
        r = redis.from_url(settings.REDIS_URL)
        r.ping()
        return settings.REDIS_URL
    except (redis.RedisError, ValueError):
        # Redis not available, fall back to in-memory
        return None


_redis_url = _get_redis_url()

if _redis_url:
    limiter = Limiter(
        key_func=get_remote_address,
        storage_uri=_redis_url,
        strategy="fixed-window",
        enabled=settings.RATE_LIMIT_ENABLED,
    )
else:
    limiter = Limiter(
        key_func=get_remote_address,
        strategy="fixed-window",
        enabled=settings.RATE_LIMIT_ENABLED,
    )


def get_limiter() -> Limiter:
    """Get the configured rate limiter instance."""
    return limiter


def login_limit() -> str:
    """Get rate limit string for the login endpoint."""
    return settings.RATE_LIMIT_LOGIN


def default_limit() -> str:
    """Get default rate limit string."""
    return settings.RATE_LIMIT_DEFAULT


def otp_limit() -> str:
    """Get rate limit string for endpoints that send or check one-time codes."""
    return settings.RATE_LIMIT_OTP
