"""
Redis client - fixed-window rate limiting for the identity routes.
Fails open when Redis is down: a missing limiter must not lock users out.
"""

import logging

from redis.asyncio import Redis

from marketbook.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

# Shared async Redis client (connection pool managed by redis-py)
_redis: Redis | None = None

RATE_LIMIT_PREFIX = "ratelimit:"


async def get_redis() -> Redis:
    """Get Redis connection, created on first use."""
    global _redis
    if _redis is None:
        _redis = Redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=1,
        )
    return _redis


async def hit_rate_limit(key: str, limit: int, window_seconds: int) -> bool:
    """Count one request for key. True when the window's limit is exceeded."""
    try:
        client = await get_redis()
        count = await client.incr(RATE_LIMIT_PREFIX + key)
        if count == 1:
            await client.expire(RATE_LIMIT_PREFIX + key, window_seconds)
        return count > limit
    except Exception:
        logger.warning("Rate limiter unavailable; letting request through", exc_info=True)
        return False


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None
