"""Doubt endpoints: learner threads, the mentor queue, and retention purge."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from learnstack.auth.dependencies import get_current_user, require_admin, require_mentor
from learnstack.db.models import DoubtThread, User
from learnstack.dependencies import get_db, get_redis_dep
from learnstack.doubts.schemas import (
    CreateDoubtRequest,
    DoubtListResponse,
    DoubtMessageResponse,
    DoubtThreadDetailResponse,
    DoubtThreadResponse,
    PurgeResponse,
    ReplyRequest,
)
from learnstack.doubts.service import DoubtService, PostedMessage

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1", tags=["Doubts"])


def _message_response(posted: PostedMessage) -> DoubtMessageResponse:
    message = posted.message
    return DoubtMessageResponse(
        id=message.id,
        sender_id=message.sender_id,
        sender_username=posted.sender_username,
        sender_role=message.sender_role,
        message=message.message,
        created_at=message.created_at,
    )


def _detail(thread: DoubtThread, messages: list[PostedMessage]) -> DoubtThreadDetailResponse:
    return DoubtThreadDetailResponse(
        thread=DoubtThreadResponse.model_validate(thread),
        messages=[_message_response(m) for m in messages],
    )


def _listing(threads: list[DoubtThread]) -> DoubtListResponse:
    return DoubtListResponse(threads=[DoubtThreadResponse.model_validate(t) for t in threads])


# ── Learner ──


@router.post("/doubts", response_model=DoubtThreadResponse, status_code=201)
async def create_doubt(
    body: CreateDoubtRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    """Ask a question about a topic of an unlocked subject."""
    thread = await DoubtService(db, redis).create_thread(user.id, body.subject, body.topic_id, body.question)
    logger.info("doubt_created", thread_id=thread.id, subject=body.subject)
    return DoubtThreadResponse.model_validate(thread)


@router.get("/doubts/mine", response_model=DoubtListResponse)
async def my_doubts(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return _listing(await DoubtService(db).user_threads(user.id))


@router.get("/doubts/{thread_id}", response_model=DoubtThreadDetailResponse)
async def get_doubt(
    thread_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return _detail(*await DoubtService(db).user_thread(user.id, thread_id))


@router.post("/doubts/{thread_id}/replies", response_model=DoubtMessageResponse, status_code=201)
async def reply_to_doubt(
    thread_id: int,
    body: ReplyRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Add a message; replying to a resolved thread reopens it."""
    return _message_response(await DoubtService(db).user_reply(user.id, thread_id, body.message))


@router.post("/doubts/{thread_id}/resolve", response_model=DoubtThreadResponse)
async def resolve_doubt(
    thread_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return DoubtThreadResponse.model_validate(await DoubtService(db).user_resolve(user.id, thread_id))


# ── Mentor ──


@router.get("/mentor/doubts/queue", response_model=DoubtListResponse)
async def doubt_queue(
    _mentor: User = Depends(require_mentor),
    db: AsyncSession = Depends(get_db),
):
    """Unclaimed doubts, oldest first."""
    return _listing(await DoubtService(db).queue())


@router.get("/mentor/doubts/active", response_model=DoubtListResponse)
async def active_doubts(
    mentor: User = Depends(require_mentor),
    db: AsyncSession = Depends(get_db),
):
    return _listing(await DoubtService(db).mentor_threads(mentor.id))


@router.post("/mentor/doubts/{thread_id}/claim", response_model=DoubtThreadResponse)
async def claim_doubt(
    thread_id: int,
    mentor: User = Depends(require_mentor),
    db: AsyncSession = Depends(get_db),
):
    thread = await DoubtService(db).claim(mentor.id, thread_id)
    logger.info("doubt_claimed", thread_id=thread_id, mentor_id=mentor.id)
    return DoubtThreadResponse.model_validate(thread)


@router.get("/mentor/doubts/{thread_id}", response_model=DoubtThreadDetailResponse)
async def mentor_get_doubt(
    thread_id: int,
    mentor: User = Depends(require_mentor),
    db: AsyncSession = Depends(get_db),
):
    return _detail(*await DoubtService(db).mentor_thread(mentor.id, thread_id))


@router.post("/mentor/doubts/{thread_id}/replies", response_model=DoubtMessageResponse, status_code=201)
async def mentor_reply(
    thread_id: int,
    body: ReplyRequest,
    mentor: User = Depends(require_mentor),
    db: AsyncSession = Depends(get_db),
):
    return _message_response(await DoubtService(db).mentor_reply(mentor.id, thread_id, body.message))


@router.post("/mentor/doubts/{thread_id}/resolve", response_model=DoubtThreadResponse)
async def mentor_resolve(
    thread_id: int,
    mentor: User = Depends(require_mentor),
    db: AsyncSession = Depends(get_db),
):
    return DoubtThreadResponse.model_validate(await DoubtService(db).mentor_resolve(mentor.id, thread_id))


# ── Retention ──


@router.post("/admin/doubts/purge", response_model=PurgeResponse)
async def purge_doubts(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete resolved threads past the retention window."""
    purged = await DoubtService(db).purge_resolved()
    logger.info("doubts_purged", purged=purged)
    return PurgeResponse(purged=purged)
