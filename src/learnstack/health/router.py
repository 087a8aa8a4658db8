"""Liveness, readiness and version checks."""

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from learnstack.config import get_settings
from learnstack.database import get_session
from learnstack.db.models import Algorithm
from learnstack.redis_client import get_optional_redis

logger = structlog.get_logger()

router = APIRouter()

# Check values that still count as ready
_READY_VALUES = frozenset({"ok", "disabled"})


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


async def _check_catalog(db: AsyncSession) -> str:
    try:
        count = (await db.execute(select(func.count()).select_from(Algorithm))).scalar_one()
    except SQLAlchemyError as exc:
        logger.warning("readiness_database_failed", error=str(exc))
        return "error"
    return "ok" if count else "empty"


async def _check_redis() -> str:
    redis = get_optional_redis()
    if redis is None:
        return "disabled"
    try:
        await redis.ping()
    except (RedisError, OSError) as exc:
        logger.warning("readiness_redis_failed", error=str(exc))
        return "error"
    return "ok"


@router.get("/ready", response_model=None)
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object] | JSONResponse:
    """Ready once the database answers and the catalog is seeded.

    Redis is optional: a process started without it reports ``disabled`` and
    is still ready. A broken connection to a configured Redis is not.
    """
    checks = {"database": await _check_catalog(db), "redis": await _check_redis()}
    if all(value in _READY_VALUES for value in checks.values()):
        return {"status": "ready", "checks": checks}
    return JSONResponse(status_code=503, content={"status": "degraded", "checks": checks})


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {"version": settings.app_version, "environment": settings.environment}
