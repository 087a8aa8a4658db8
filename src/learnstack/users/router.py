"""User router: all /api/v1/users/* endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from learnstack.auth.dependencies import get_current_user, require_admin
from learnstack.db.models import User
from learnstack.dependencies import get_db, get_redis_dep
from learnstack.progress.models import Profile, UserSnapshot
from learnstack.progress.service import ProgressService
from learnstack.users.schemas import (
    CreateUserRequest,
    ProfileUpdateRequest,
    TopicStatusesResponse,
    UserResponse,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


def _user_response(snapshot: UserSnapshot) -> UserResponse:
    return UserResponse(**snapshot.model_dump(include=set(UserResponse.model_fields)))


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    body: CreateUserRequest,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> UserResponse:
    """Provision a user with a freshly initialized progress tree."""
    service = ProgressService(db, redis)
    try:
        snapshot = await service.create_user(
            body.username,
            body.email,
            role=body.role,
            profile=Profile(first_name=body.first_name, last_name=body.last_name, bio=body.bio),
        )
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    logger.info("user_created", user_id=snapshot.id, role=body.role)
    return _user_response(snapshot)


@router.get("/me", response_model=UserResponse)
async def get_me(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """Own identity, progress tree and stats."""
    snapshot = await ProgressService(db).get_snapshot(user.id)
    return _user_response(snapshot)


@router.patch("/me/profile", response_model=UserResponse)
async def update_my_profile(
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """Update first_name, last_name, bio."""
    snapshot = await ProgressService(db).update_profile(
        user.id,
        first_name=body.first_name,
        last_name=body.last_name,
        bio=body.bio,
    )
    return _user_response(snapshot)


@router.get("/me/topic-statuses", response_model=TopicStatusesResponse)
async def get_my_topic_statuses(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> TopicStatusesResponse:
    """Effective lock status of every topic and algorithm, grouped by subject."""
    statuses = await ProgressService(db, redis).topic_statuses(user.id)
    return TopicStatusesResponse(subjects=statuses)
