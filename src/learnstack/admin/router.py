"""Admin API endpoints: lock overrides, leaderboard regeneration, status reports."""

from __future__ import annotations

from dataclasses import asdict
from typing import Literal

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from learnstack.admin.service import AdminService, LockRequest
from learnstack.auth.dependencies import require_admin
from learnstack.db.models import User
from learnstack.dependencies import get_db, get_redis_dep
from learnstack.leaderboard.ranking import LEADERBOARD_TYPES
from learnstack.leaderboard.service import LeaderboardService
from learnstack.progress.service import ProgressService
from learnstack.users.schemas import TopicStatusesResponse

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/admin", tags=["Admin"])


@router.post("/locks")
async def set_lock(
    body: LockRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> dict:
    """Lock or unlock a topic, algorithm or subject globally or for specific users."""
    result = await AdminService(db, redis).set_lock(body)
    logger.info(
        "admin_lock",
        admin_id=admin.id,
        scope=body.scope,
        target=body.target,
        locked=body.locked,
        failed=len(result.failed_users),
    )
    return asdict(result)


@router.post("/leaderboard/regenerate")
async def regenerate_leaderboards(
    type: Literal["daily", "weekly", "monthly", "all-time"] | None = Query(None),  # noqa: A002
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> dict:
    """Rebuild one board, or all of them when no type is given."""
    service = LeaderboardService(db, redis)
    types = [type] if type else list(LEADERBOARD_TYPES)
    regenerated = {}
    for board_type in types:
        board = await service.regenerate(board_type)
        regenerated[board_type] = len(board.rankings)
    return {"regenerated": regenerated}


@router.get("/users/{user_id}/topic-statuses", response_model=TopicStatusesResponse)
async def get_user_topic_statuses(
    user_id: int,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> TopicStatusesResponse:
    statuses = await ProgressService(db, redis).topic_statuses(user_id)
    return TopicStatusesResponse(subjects=statuses)
