"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

from learnstack.database import get_session as _get_session
from learnstack.redis_client import get_optional_redis

get_db = _get_session


async def get_redis_dep() -> AsyncGenerator[object | None, None]:
    """Yield the Redis client as a FastAPI dependency (None when Redis is not initialized)."""
    yield get_optional_redis()
