"""Optional Redis connection.

Redis backs the catalog cache, the achievement-check throttle and the rate
limiter. All three degrade to "skip" when it is missing, so a failed startup
ping leaves the pool unset instead of failing the app.
"""

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

_pool: redis.Redis | None = None


async def init_redis(url: str) -> bool:
    """Connect and ping; returns False (and stays disconnected) when Redis is unreachable."""
    global _pool  # noqa: PLW0603
    client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
    )
    try:
        await client.ping()
    except (RedisError, OSError):
        logger.warning("Redis unavailable at %s, continuing without cache and rate limiting", url, exc_info=True)
        await client.aclose()
        return False
    _pool = client
    return True


async def close_redis() -> None:
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


def get_optional_redis() -> redis.Redis | None:
    """The Redis client, or None when it is not connected."""
    return _pool
