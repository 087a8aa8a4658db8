"""Pydantic response models for achievement endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class AchievementTemplateResponse(BaseModel):
    id: str
    name: str
    description: str
    icon: str
    category: str
    points: int
    rarity: str
    criteria: dict[str, Any]


class AllAchievementsResponse(BaseModel):
    achievements: list[AchievementTemplateResponse]


class EarnedAchievementResponse(BaseModel):
    id: str
    name: str | None = None
    points: int
    earned_at: datetime


class UserAchievementsResponse(BaseModel):
    earned: list[EarnedAchievementResponse]
    total_available: int
    total_earned: int
    total_points: int


class CheckAchievementsResponse(BaseModel):
    awarded: list[EarnedAchievementResponse]
    rank_points: int
    rank_level: str
    points_to_next_rank: int | None = None
