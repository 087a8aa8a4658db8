"""Achievement API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from learnstack.achievements.schemas import (
    AchievementTemplateResponse,
    AllAchievementsResponse,
    CheckAchievementsResponse,
    EarnedAchievementResponse,
    UserAchievementsResponse,
)
from learnstack.achievements.service import AchievementService
from learnstack.auth.dependencies import get_current_user
from learnstack.db.models import User
from learnstack.dependencies import get_db, get_redis_dep
from learnstack.progress.rank import points_to_next_rank
from learnstack.progress.service import ProgressService

router = APIRouter(prefix="/api/v1/achievements", tags=["Achievements"])


@router.get("", response_model=AllAchievementsResponse)
async def list_achievements(db: AsyncSession = Depends(get_db)):
    """All active achievement templates."""
    templates = await AchievementService(db).list_templates()
    return AllAchievementsResponse(
        achievements=[
            AchievementTemplateResponse(
                id=t.id,
                name=t.name,
                description=t.description,
                icon=t.icon,
                category=t.category,
                points=t.points,
                rarity=t.rarity,
                criteria=t.criteria,
            )
            for t in templates
        ]
    )


@router.get("/me", response_model=UserAchievementsResponse)
async def get_my_achievements(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    templates = await AchievementService(db).list_templates()
    names = {t.id: t.name for t in templates}
    snapshot = await ProgressService(db).get_snapshot(user.id)

    earned = [
        EarnedAchievementResponse(id=a.id, name=names.get(a.id), points=a.points, earned_at=a.earned_at)
        for a in snapshot.achievements
    ]
    return UserAchievementsResponse(
        earned=earned,
        total_available=len(templates),
        total_earned=len(earned),
        total_points=sum(a.points for a in earned),
    )


@router.post("/check", response_model=CheckAchievementsResponse)
async def check_achievements(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    """Evaluate all templates now, bypassing the per-user throttle."""
    service = AchievementService(db, redis)
    awarded, snapshot = await service.evaluate(user.id, force=True)
    if snapshot is None:
        snapshot = await ProgressService(db, redis).get_snapshot(user.id)
    names = {t.id: t.name for t in await service.list_templates()} if awarded else {}
    return CheckAchievementsResponse(
        awarded=[
            EarnedAchievementResponse(id=a.id, name=names.get(a.id), points=a.points, earned_at=a.earned_at)
            for a in awarded
        ],
        rank_points=snapshot.stats.rank.points,
        rank_level=snapshot.stats.rank.level,
        points_to_next_rank=points_to_next_rank(snapshot.stats.rank.points),
    )
