"""Pydantic request/response models for progress endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from learnstack.progress.engine import ProgressDelta
from learnstack.progress.models import EarnedAchievement, UserStats


class ProgressUpdateRequest(ProgressDelta):
    topic_id: str = Field(..., min_length=1, max_length=64)
    algorithm_id: str = Field(..., min_length=1, max_length=64)


class ActivityRequest(BaseModel):
    time_spent: int = Field(default=0, ge=0, description="minutes")
    algorithms_attempted: int = Field(default=0, ge=0)
    algorithms_completed: int = Field(default=0, ge=0)
    points_earned: int = Field(default=0, ge=0)
    topic: str | None = Field(default=None, max_length=64)


class StatsResponse(BaseModel):
    stats: UserStats
    achievements_awarded: list[EarnedAchievement] = []


class ProgressUpdateResponse(BaseModel):
    topic_id: str
    algorithm_id: str
    newly_completed: bool
    topic_completed: bool
    topic_completion: int
    advanced_to: str | None = None
    current_topic: str | None = None
    warnings: list[str] = []
    stats: UserStats
    achievements_awarded: list[EarnedAchievement] = []


class AccessResponse(BaseModel):
    topic_id: str
    algorithm_id: str | None = None
    has_access: bool
    effective_status: str
