"""Request/response schemas for user endpoints."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, EmailStr, Field

from learnstack.progress.models import (
    EarnedAchievement,
    LearningPath,
    Profile,
    TopicProgress,
    UserStats,
)


class CreateUserRequest(BaseModel):
    """Provision a user whose credentials live in the auth service."""

    username: str = Field(..., min_length=3, max_length=64, pattern=r"^[A-Za-z0-9_.-]+$")
    email: EmailStr
    role: Literal["user", "mentor", "admin"] = "user"
    first_name: str = Field("", max_length=64)
    last_name: str = Field("", max_length=64)
    bio: str = Field("", max_length=500)


class ProfileUpdateRequest(BaseModel):
    """Update profile fields; omitted fields stay unchanged."""

    first_name: str | None = Field(None, max_length=64)
    last_name: str | None = Field(None, max_length=64)
    bio: str | None = Field(None, max_length=500)


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    role: str
    profile: Profile
    progress: dict[str, TopicProgress]
    stats: UserStats
    achievements: list[EarnedAchievement]
    learning_path: LearningPath


class AlgorithmStatusEntry(BaseModel):
    id: str
    name: str
    effective_status: str
    completed: bool
    is_globally_locked: bool


class TopicStatusEntry(BaseModel):
    id: str
    name: str
    effective_status: str
    status_text: str
    completion: int
    is_globally_locked: bool
    algorithms: list[AlgorithmStatusEntry]


class TopicStatusesResponse(BaseModel):
    subjects: dict[str, list[TopicStatusEntry]]
