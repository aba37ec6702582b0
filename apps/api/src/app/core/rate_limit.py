"""
Rate Limiting Module

Sliding-window rate limits backed by Redis sorted sets, falling back to
in-memory storage when Redis is unavailable.

Applied to:
- Login (per client IP, slows credential stuffing)
- Signups (per student, slows scripted seat grabbing)
- Verification actions (per staff member, prevents mass operations)
"""

import logging
import time

from fastapi import HTTPException, Request, status
from redis.asyncio import Redis

from app.core.auth import CurrentUser
from app.core.redis import get_redis

logger = logging.getLogger(__name__)

# In-memory rate limit storage (fallback when Redis unavailable)
# Format: {key: [timestamp, ...]}
_memory_store: dict[str, list[float]] = {}


class RateLimitExceeded(HTTPException):
    """Exception raised when rate limit is exceeded."""

    def __init__(self, limit: int, window_seconds: int):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "RATE_LIMIT_EXCEEDED",
                "message": f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.",
                "retry_after_seconds": window_seconds,
            },
            headers={"Retry-After": str(window_seconds)},
        )


async def _check_rate_limit_redis(
    client: Redis,
    key: str,
    limit: int,
    window_seconds: int,
) -> bool:
    """
    Check rate limit using a Redis sorted set of request timestamps.

    Returns:
        True if request is allowed, False if rate limit exceeded
    """
    now = time.time()
    window_start = now - window_seconds

    pipe = client.pipeline()
    pipe.zremrangebyscore(key, 0, window_start)
    pipe.zcard(key)
    pipe.zadd(key, {str(now): now})
    pipe.expire(key, window_seconds)

    results = await pipe.execute()
    current_count = results[1]

    return current_count < limit


def _check_rate_limit_memory(key: str, limit: int, window_seconds: int) -> bool:
    """
    Check rate limit using in-memory storage.

    Only limits requests handled by this process.
    """
    now = time.time()
    window_start = now - window_seconds

    timestamps = [ts for ts in _memory_store.get(key, []) if ts > window_start]
    if len(timestamps) >= limit:
        _memory_store[key] = timestamps
        return False

    timestamps.append(now)
    _memory_store[key] = timestamps
    return True


async def check_rate_limit(key: str, limit: int, window_seconds: int) -> bool:
    """
    Check if a request is within rate limits.

    Tries Redis first, falls back to in-memory storage.

    Args:
        key: Unique key for this rate limit (e.g., "signup:user_123")
        limit: Maximum requests allowed in the window
        window_seconds: Time window in seconds

    Returns:
        True if request is allowed, False if rate limit exceeded
    """
    client = await get_redis()

    if client is not None:
        try:
            return await _check_rate_limit_redis(client, key, limit, window_seconds)
        except Exception as e:
            logger.warning(f"Redis rate limit check failed, using memory: {e}")

    return _check_rate_limit_memory(key, limit, window_seconds)


async def enforce_user_rate_limit(
    user: CurrentUser,
    action: str,
    limit: int,
    window_seconds: int,
) -> None:
    """
    Rate limit an action per authenticated user.

    Raises:
        RateLimitExceeded: If the user exceeded the limit
    """
    key = f"rate_limit:{action}:{user.id}"
    if not await check_rate_limit(key, limit, window_seconds):
        logger.warning(
            f"Rate limit exceeded for user {user.id} on action '{action}': "
            f"{limit}/{window_seconds}s"
        )
        raise RateLimitExceeded(limit, window_seconds)


async def enforce_ip_rate_limit(
    request: Request,
    action: str,
    limit: int,
    window_seconds: int,
) -> None:
    """
    Rate limit an unauthenticated action per client IP.

    Raises:
        RateLimitExceeded: If the client exceeded the limit
    """
    client_ip = request.client.host if request.client else "unknown"
    key = f"rate_limit:{action}:{client_ip}"
    if not await check_rate_limit(key, limit, window_seconds):
        logger.warning(f"Rate limit exceeded for {client_ip} on action '{action}'")
        raise RateLimitExceeded(limit, window_seconds)


__all__ = [
    "check_rate_limit",
    "enforce_user_rate_limit",
    "enforce_ip_rate_limit",
    "RateLimitExceeded",
]
