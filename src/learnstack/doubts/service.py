"""Doubt threads: learner questions answered by mentors.

Lifecycle:
- A learner opens a thread for a topic of a subject they can access; it
  joins the mentor queue as ``new``.
- A mentor claims it (``in-progress``); only that mentor replies to it.
- Either side resolves it. A learner reply reopens a resolved thread, back to
  its mentor when it had one, otherwise back to the queue.
- Resolved threads are purged after the retention window.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from learnstack.config import get_settings
from learnstack.db.models import DoubtMessage, DoubtThread, User
from learnstack.errors import AccessDeniedError, InvalidStateError, NotFoundError
from learnstack.progress.service import ProgressService
from learnstack.progress.unlock import check_subject_access

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = ("new", "in-progress")

VALID_TRANSITIONS: dict[str, list[str]] = {
    "new": ["in-progress", "resolved"],
    "in-progress": ["resolved"],
    "resolved": ["new", "in-progress"],
}


def validate_transition(current_status: str, target_status: str) -> None:
    """Raise InvalidStateError if the thread transition is not allowed."""
    if target_status not in VALID_TRANSITIONS.get(current_status, []):
        raise InvalidStateError(
            f"Invalid transition: {current_status} -> {target_status}",
            current=current_status,
            target=target_status,
        )


def reopen_status(thread: DoubtThread) -> str:
    """Status a resolved thread returns to when the learner writes again."""
    return "in-progress" if thread.mentor_id is not None else "new"


@dataclass
class PostedMessage:
    message: DoubtMessage
    sender_username: str


class DoubtService:
    def __init__(self, db: AsyncSession, redis: object | None = None) -> None:
        self.db = db
        self.redis = redis
        self.settings = get_settings()

    # --- Reads ---

    async def _get_thread(self, thread_id: int) -> DoubtThread:
        result = await self.db.execute(
            select(DoubtThread).where(DoubtThread.id == thread_id).execution_options(populate_existing=True)
        )
        thread = result.scalar_one_or_none()
        if thread is None:
            raise NotFoundError(f"Doubt thread {thread_id} not found", thread_id=thread_id)
        return thread

    async def _own_thread(self, user_id: int, thread_id: int) -> DoubtThread:
        thread = await self._get_thread(thread_id)
        if thread.user_id != user_id:
            # Someone else's thread is reported as missing, not forbidden
            raise NotFoundError(f"Doubt thread {thread_id} not found", thread_id=thread_id)
        return thread

    async def _assigned_thread(self, mentor_id: int, thread_id: int) -> DoubtThread:
        thread = await self._get_thread(thread_id)
        if thread.mentor_id != mentor_id:
            raise NotFoundError(f"Doubt thread {thread_id} is not assigned to you", thread_id=thread_id)
        return thread

    async def messages(self, thread_id: int) -> list[PostedMessage]:
        """Thread messages in the order they were posted."""
        result = await self.db.execute(
            select(DoubtMessage, User.username)
            .join(User, User.id == DoubtMessage.sender_id)
            .where(DoubtMessage.thread_id == thread_id)
            .order_by(DoubtMessage.id)
        )
        return [PostedMessage(message=m, sender_username=name) for m, name in result.all()]

    async def user_threads(self, user_id: int) -> list[DoubtThread]:
        """The learner's open threads, most recently active first."""
        result = await self.db.execute(
            select(DoubtThread)
            .where(DoubtThread.user_id == user_id, DoubtThread.status.in_(ACTIVE_STATUSES))
            .order_by(DoubtThread.updated_at.desc(), DoubtThread.id.desc())
        )
        return list(result.scalars().all())

    async def user_thread(self, user_id: int, thread_id: int) -> tuple[DoubtThread, list[PostedMessage]]:
        thread = await self._own_thread(user_id, thread_id)
        return thread, await self.messages(thread_id)

    async def queue(self) -> list[DoubtThread]:
        """Unclaimed threads, oldest first."""
        result = await self.db.execute(
            select(DoubtThread)
            .where(DoubtThread.status == "new")
            .order_by(DoubtThread.created_at, DoubtThread.id)
        )
        return list(result.scalars().all())

    async def mentor_threads(self, mentor_id: int) -> list[DoubtThread]:
        """Threads the mentor has claimed and not yet resolved."""
        result = await self.db.execute(
            select(DoubtThread)
            .where(DoubtThread.mentor_id == mentor_id, DoubtThread.status == "in-progress")
            .order_by(DoubtThread.updated_at.desc(), DoubtThread.id.desc())
        )
        return list(result.scalars().all())

    async def mentor_thread(self, mentor_id: int, thread_id: int) -> tuple[DoubtThread, list[PostedMessage]]:
        """A queued thread, or one assigned to this mentor."""
        thread = await self._get_thread(thread_id)
        if thread.status != "new" and thread.mentor_id != mentor_id:
            raise NotFoundError(f"Doubt thread {thread_id} is not assigned to you", thread_id=thread_id)
        return thread, await self.messages(thread_id)

    # --- Learner writes ---

    def _post(self, thread: DoubtThread, sender_id: int, role: str, text: str, now: datetime) -> DoubtMessage:
        message = DoubtMessage(thread_id=thread.id, sender_id=sender_id, sender_role=role, message=text, created_at=now)
        self.db.add(message)
        thread.updated_at = now
        return message

    async def create_thread(
        self,
        user_id: int,
        subject: str,
        topic_id: str,
        question: str,
        now: datetime | None = None,
    ) -> DoubtThread:
        """Open a thread; the question is also its first message."""
        if now is None:
            now = datetime.now(timezone.utc)
        progress = ProgressService(self.db, self.redis)
        catalog = await progress.load_catalog()
        topic = catalog.topic(topic_id)
        if topic is None or topic.subject != subject:
            raise NotFoundError(f"Topic {topic_id} not found in {subject}", subject=subject, topic_id=topic_id)
        snapshot = await progress.get_snapshot(user_id)
        if not check_subject_access(snapshot, catalog, subject):
            raise AccessDeniedError(f"Subject {subject} is locked", subject=subject)

        thread = DoubtThread(
            user_id=user_id,
            mentor_id=None,
            subject=subject,
            topic_id=topic_id,
            initial_question=question,
            status="new",
            created_at=now,
            updated_at=now,
            resolved_at=None,
        )
        self.db.add(thread)
        await self.db.flush()
        self._post(thread, user_id, "user", question, now)
        await self.db.commit()
        logger.info("User %s opened doubt %s (%s/%s)", user_id, thread.id, subject, topic_id)
        return thread

    async def user_reply(self, user_id: int, thread_id: int, text: str, now: datetime | None = None) -> PostedMessage:
        if now is None:
            now = datetime.now(timezone.utc)
        thread = await self._own_thread(user_id, thread_id)
        if thread.status == "resolved":
            target = reopen_status(thread)
            validate_transition(thread.status, target)
            thread.status = target
            thread.resolved_at = None
        message = self._post(thread, user_id, "user", text, now)
        await self.db.commit()
        return PostedMessage(message=message, sender_username=await self._username(user_id))

    async def user_resolve(self, user_id: int, thread_id: int, now: datetime | None = None) -> DoubtThread:
        thread = await self._own_thread(user_id, thread_id)
        return await self._resolve(thread, now)

    # --- Mentor writes ---

    async def claim(self, mentor_id: int, thread_id: int, now: datetime | None = None) -> DoubtThread:
        """Take a queued thread. Of two mentors racing, exactly one wins."""
        if now is None:
            now = datetime.now(timezone.utc)
        result = await self.db.execute(
            update(DoubtThread)
            .where(DoubtThread.id == thread_id, DoubtThread.status == "new")
            .values(status="in-progress", mentor_id=mentor_id, updated_at=now)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            thread = await self._get_thread(thread_id)
            raise InvalidStateError("Doubt has already been claimed", thread_id=thread_id, status=thread.status)
        await self.db.commit()
        logger.info("Mentor %s claimed doubt %s", mentor_id, thread_id)
        return await self._get_thread(thread_id)

    async def mentor_reply(
        self, mentor_id: int, thread_id: int, text: str, now: datetime | None = None
    ) -> PostedMessage:
        if now is None:
            now = datetime.now(timezone.utc)
        thread = await self._assigned_thread(mentor_id, thread_id)
        if thread.status == "resolved":
            raise InvalidStateError("Doubt thread is already resolved", thread_id=thread_id, status=thread.status)
        message = self._post(thread, mentor_id, "mentor", text, now)
        await self.db.commit()
        return PostedMessage(message=message, sender_username=await self._username(mentor_id))

    async def mentor_resolve(self, mentor_id: int, thread_id: int, now: datetime | None = None) -> DoubtThread:
        thread = await self._assigned_thread(mentor_id, thread_id)
        return await self._resolve(thread, now)

    async def _resolve(self, thread: DoubtThread, now: datetime | None) -> DoubtThread:
        if now is None:
            now = datetime.now(timezone.utc)
        validate_transition(thread.status, "resolved")
        thread.status = "resolved"
        thread.resolved_at = now
        thread.updated_at = now
        await self.db.commit()
        logger.info("Doubt %s resolved", thread.id)
        return thread

    async def _username(self, user_id: int) -> str:
        return (await self.db.execute(select(User.username).where(User.id == user_id))).scalar_one()

    # --- Retention ---

    async def purge_resolved(self, now: datetime | None = None) -> int:
        """Delete threads resolved longer ago than the retention window; returns the count."""
        if now is None:
            now = datetime.now(timezone.utc)
        cutoff = now - timedelta(hours=self.settings.doubt_retention_hours)
        expired = select(DoubtThread.id).where(
            DoubtThread.status == "resolved",
            DoubtThread.resolved_at < cutoff,
        )
        await self.db.execute(
            delete(DoubtMessage)
            .where(DoubtMessage.thread_id.in_(expired))
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(
            delete(DoubtThread).where(DoubtThread.id.in_(expired)).execution_options(synchronize_session=False)
        )
        await self.db.commit()
        if result.rowcount:
            logger.info("Purged %d resolved doubt threads", result.rowcount)
        return result.rowcount
