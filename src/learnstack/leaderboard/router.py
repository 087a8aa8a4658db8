"""Leaderboard API endpoints."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from learnstack.auth.dependencies import get_current_user
from learnstack.db.models import User
from learnstack.dependencies import get_db, get_redis_dep
from learnstack.leaderboard.schemas import LeaderboardEntry, LeaderboardResponse, MyPositionResponse
from learnstack.leaderboard.service import LeaderboardService

router = APIRouter(prefix="/api/v1/leaderboard", tags=["Leaderboard"])

BoardType = Literal["daily", "weekly", "monthly", "all-time"]


@router.get("", response_model=LeaderboardResponse)
async def get_leaderboard(
    type: BoardType = Query("all-time"),  # noqa: A002
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    board = await LeaderboardService(db, redis).get_leaderboard(type)
    rankings = list(board.rankings or [])
    return LeaderboardResponse(
        type=board.type,
        period_start=board.period_start,
        period_end=board.period_end,
        last_updated=board.last_updated,
        entries=[LeaderboardEntry(**r) for r in rankings[:limit]],
        total=len(rankings),
    )


@router.get("/me", response_model=MyPositionResponse)
async def get_my_position(
    type: BoardType = Query("all-time"),  # noqa: A002
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    entry = await LeaderboardService(db, redis).get_user_position(user.id, type)
    return MyPositionResponse(type=type, entry=LeaderboardEntry(**entry) if entry else None)


@router.post("/update", response_model=MyPositionResponse)
async def update_my_position(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    """Refresh the caller's all-time entry from their current stats."""
    entry = await LeaderboardService(db, redis).update_user_position(user.id)
    return MyPositionResponse(type="all-time", entry=LeaderboardEntry(**entry) if entry else None)
