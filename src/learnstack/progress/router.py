"""Progress API endpoints: logins, activity, progress reports, access checks."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from learnstack.achievements.service import AchievementService
from learnstack.auth.dependencies import get_current_user
from learnstack.db.models import User
from learnstack.dependencies import get_db, get_redis_dep
from learnstack.errors import LearnStackError
from learnstack.leaderboard.service import LeaderboardService
from learnstack.progress.activity import ActivityDelta
from learnstack.progress.engine import ProgressDelta
from learnstack.progress.models import EarnedAchievement, UserSnapshot
from learnstack.progress.schemas import (
    AccessResponse,
    ActivityRequest,
    ProgressUpdateRequest,
    ProgressUpdateResponse,
    StatsResponse,
)
from learnstack.progress.service import ProgressService

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/progress", tags=["Progress"])


async def _after_write(
    db: AsyncSession,
    redis: object | None,
    user_id: int,
    snapshot: UserSnapshot,
    event: str | None = None,
) -> tuple[UserSnapshot, list[EarnedAchievement]]:
    """Achievements and leaderboard position follow a committed write.

    The write itself already succeeded, so failures here are logged and the
    caller still gets its result.
    """
    awarded: list[EarnedAchievement] = []
    try:
        awarded, updated = await AchievementService(db, redis).evaluate(user_id, event)
        if updated is not None:
            snapshot = updated
        await LeaderboardService(db, redis).update_user_position(user_id)
    except (LearnStackError, SQLAlchemyError) as e:
        await db.rollback()
        logger.warning("post_write_update_failed", user_id=user_id, event=event, error=str(e))
    return snapshot, awarded


@router.post("/login", response_model=StatsResponse)
async def record_login(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> StatsResponse:
    """Streak bookkeeping for a login; may award the first-login achievement."""
    snapshot = await ProgressService(db, redis).record_login(user.id)
    snapshot, awarded = await _after_write(db, redis, user.id, snapshot, event="login")
    return StatsResponse(stats=snapshot.stats, achievements_awarded=awarded)


@router.post("/activity", response_model=StatsResponse)
async def record_activity(
    body: ActivityRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> StatsResponse:
    snapshot = await ProgressService(db, redis).record_activity(user.id, ActivityDelta(**body.model_dump()))
    snapshot, awarded = await _after_write(db, redis, user.id, snapshot)
    return StatsResponse(stats=snapshot.stats, achievements_awarded=awarded)


@router.post("", response_model=ProgressUpdateResponse)
async def update_progress(
    body: ProgressUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> ProgressUpdateResponse:
    """Report visualization or practice progress on one algorithm."""
    delta = ProgressDelta(**body.model_dump(exclude={"topic_id", "algorithm_id"}))
    snapshot, outcome = await ProgressService(db, redis).update_progress(
        user.id, body.topic_id, body.algorithm_id, delta
    )
    event = "completion" if outcome.newly_completed else None
    snapshot, awarded = await _after_write(db, redis, user.id, snapshot, event=event)

    topic = snapshot.progress.get(body.topic_id)
    return ProgressUpdateResponse(
        topic_id=outcome.topic_id,
        algorithm_id=outcome.algorithm_id,
        newly_completed=outcome.newly_completed,
        topic_completed=outcome.topic_completed,
        topic_completion=topic.completion if topic else 0,
        advanced_to=outcome.advanced_to,
        current_topic=snapshot.learning_path.current_topic,
        warnings=outcome.warnings,
        stats=snapshot.stats,
        achievements_awarded=awarded,
    )


@router.get("/access/{topic_id}", response_model=AccessResponse)
async def check_topic_access(
    topic_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> AccessResponse:
    result = await ProgressService(db, redis).check_access(user.id, topic_id)
    return AccessResponse(topic_id=topic_id, has_access=result.has_access, effective_status=result.effective_status)


@router.get("/access/{topic_id}/{algorithm_id}", response_model=AccessResponse)
async def check_algorithm_access(
    topic_id: str,
    algorithm_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> AccessResponse:
    result = await ProgressService(db, redis).check_access(user.id, topic_id, algorithm_id)
    return AccessResponse(
        topic_id=topic_id,
        algorithm_id=algorithm_id,
        has_access=result.has_access,
        effective_status=result.effective_status,
    )
