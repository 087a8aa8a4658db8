"""Doubt thread lifecycle tests: subject gating, mentor queue, replies, purge."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from learnstack.catalog.service import CatalogService
from learnstack.db.models import DoubtMessage, DoubtThread
from learnstack.doubts.service import DoubtService
from learnstack.errors import AccessDeniedError, InvalidStateError, NotFoundError

T0 = datetime(2026, 3, 4, 9, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def learner(create_user):
    return await create_user("ada")


@pytest_asyncio.fixture
async def mentor(create_user):
    return await create_user("grace", role="mentor")


async def _open(db: AsyncSession, user_id: int, now: datetime = T0) -> DoubtThread:
    return await DoubtService(db).create_thread(
        user_id, "DSA Visualizer", "searching", "Why does binary search need sorted input?", now=now
    )


class TestCreate:
    """Opening a thread."""

    @pytest.mark.asyncio
    async def test_question_is_first_message(self, db_session: AsyncSession, learner):
        """The question becomes the first message and the thread joins the queue."""
        thread = await _open(db_session, learner.id)
        assert thread.status == "new"
        assert thread.mentor_id is None

        _, messages = await DoubtService(db_session).user_thread(learner.id, thread.id)
        assert [(m.message.sender_role, m.sender_username) for m in messages] == [("user", "ada")]
        assert messages[0].message.message == "Why does binary search need sorted input?"

    @pytest.mark.asyncio
    async def test_locked_subject_is_denied(self, db_session: AsyncSession, learner):
        """A learner cannot ask about a subject whose topics are all locked."""
        await CatalogService(db_session).set_subject_global_lock("C Programming", True)
        with pytest.raises(AccessDeniedError):
            await DoubtService(db_session).create_thread(learner.id, "C Programming", "cBasics", "What is a pointer?")
        count = (await db_session.execute(select(func.count()).select_from(DoubtThread))).scalar_one()
        assert count == 0

    @pytest.mark.asyncio
    async def test_subject_open_through_any_topic(self, db_session: AsyncSession, learner):
        """A still-locked topic can be asked about while its subject has an open topic."""
        thread = await DoubtService(db_session).create_thread(
            learner.id, "DSA Visualizer", "sorting", "Is bubble sort stable?"
        )
        assert thread.topic_id == "sorting"

    @pytest.mark.asyncio
    async def test_topic_must_belong_to_subject(self, db_session: AsyncSession, learner):
        """A topic from another subject is reported as not found."""
        with pytest.raises(NotFoundError):
            await DoubtService(db_session).create_thread(learner.id, "DSA Visualizer", "cBasics", "Why?")

    @pytest.mark.asyncio
    async def test_unknown_topic(self, db_session: AsyncSession, learner):
        """An unknown topic id is reported as not found."""
        with pytest.raises(NotFoundError):
            await DoubtService(db_session).create_thread(learner.id, "DSA Visualizer", "graphs", "Why?")


class TestLearnerThreads:
    """The learner's own view."""

    @pytest.mark.asyncio
    async def test_open_threads_most_recent_first(self, db_session: AsyncSession, learner):
        """Only unresolved threads are listed, latest activity first."""
        service = DoubtService(db_session)
        first = await _open(db_session, learner.id, now=T0)
        second = await _open(db_session, learner.id, now=T0 + timedelta(minutes=5))
        resolved = await _open(db_session, learner.id, now=T0 + timedelta(minutes=10))
        await service.user_resolve(learner.id, resolved.id, now=T0 + timedelta(minutes=11))
        await service.user_reply(learner.id, first.id, "Any hints?", now=T0 + timedelta(minutes=20))

        assert [t.id for t in await service.user_threads(learner.id)] == [first.id, second.id]

    @pytest.mark.asyncio
    async def test_other_users_thread_is_hidden(self, db_session: AsyncSession, learner, create_user):
        """Another learner's thread reads, replies and resolves as not found."""
        other = await create_user("linus")
        thread = await _open(db_session, learner.id)
        service = DoubtService(db_session)
        with pytest.raises(NotFoundError):
            await service.user_thread(other.id, thread.id)
        with pytest.raises(NotFoundError):
            await service.user_reply(other.id, thread.id, "me too")
        with pytest.raises(NotFoundError):
            await service.user_resolve(other.id, thread.id)

    @pytest.mark.asyncio
    async def test_resolve_twice(self, db_session: AsyncSession, learner):
        """Resolving an already resolved thread is an invalid transition."""
        service = DoubtService(db_session)
        thread = await _open(db_session, learner.id)
        await service.user_resolve(learner.id, thread.id)
        with pytest.raises(InvalidStateError):
            await service.user_resolve(learner.id, thread.id)


class TestMentorFlow:
    """Queue, claim, reply and resolve."""

    @pytest.mark.asyncio
    async def test_claim_reply_resolve(self, db_session: AsyncSession, learner, mentor):
        """A claimed thread leaves the queue and shows up among the mentor's active threads."""
        service = DoubtService(db_session)
        thread = await _open(db_session, learner.id)
        assert [t.id for t in await service.queue()] == [thread.id]

        claimed = await service.claim(mentor.id, thread.id, now=T0 + timedelta(minutes=1))
        assert (claimed.status, claimed.mentor_id) == ("in-progress", mentor.id)
        assert await service.queue() == []
        assert [t.id for t in await service.mentor_threads(mentor.id)] == [thread.id]

        posted = await service.mentor_reply(mentor.id, thread.id, "Halving only works on order.")
        assert (posted.message.sender_role, posted.sender_username) == ("mentor", "grace")

        resolved = await service.mentor_resolve(mentor.id, thread.id)
        assert resolved.status == "resolved"
        assert resolved.resolved_at is not None
        assert await service.mentor_threads(mentor.id) == []

    @pytest.mark.asyncio
    async def test_queue_oldest_first(self, db_session: AsyncSession, learner):
        """The queue serves the longest-waiting question first."""
        late = await _open(db_session, learner.id, now=T0 + timedelta(hours=1))
        early = await _open(db_session, learner.id, now=T0)
        assert [t.id for t in await DoubtService(db_session).queue()] == [early.id, late.id]

    @pytest.mark.asyncio
    async def test_second_claim_loses(self, db_session: AsyncSession, learner, mentor, create_user):
        """Only the first mentor to claim a thread gets it."""
        rival = await create_user("barbara", role="mentor")
        service = DoubtService(db_session)
        thread = await _open(db_session, learner.id)
        await service.claim(mentor.id, thread.id)
        with pytest.raises(InvalidStateError, match="already been claimed"):
            await service.claim(rival.id, thread.id)
        thread, _ = await service.mentor_thread(mentor.id, thread.id)
        assert thread.mentor_id == mentor.id

    @pytest.mark.asyncio
    async def test_claim_unknown_thread(self, db_session: AsyncSession, mentor):
        """Claiming a missing thread is not found, not a conflict."""
        with pytest.raises(NotFoundError):
            await DoubtService(db_session).claim(mentor.id, 404)

    @pytest.mark.asyncio
    async def test_unassigned_mentor_is_shut_out(self, db_session: AsyncSession, learner, mentor, create_user):
        """Only the claiming mentor can read, reply to or resolve a claimed thread."""
        rival = await create_user("barbara", role="mentor")
        service = DoubtService(db_session)
        thread = await _open(db_session, learner.id)

        _, messages = await service.mentor_thread(rival.id, thread.id)
        assert len(messages) == 1

        await service.claim(mentor.id, thread.id)
        with pytest.raises(NotFoundError):
            await service.mentor_thread(rival.id, thread.id)
        with pytest.raises(NotFoundError):
            await service.mentor_reply(rival.id, thread.id, "hi")
        with pytest.raises(NotFoundError):
            await service.mentor_resolve(rival.id, thread.id)

    @pytest.mark.asyncio
    async def test_no_mentor_reply_after_resolve(self, db_session: AsyncSession, learner, mentor):
        """A mentor cannot write to a resolved thread."""
        service = DoubtService(db_session)
        thread = await _open(db_session, learner.id)
        await service.claim(mentor.id, thread.id)
        await service.user_resolve(learner.id, thread.id)
        with pytest.raises(InvalidStateError, match="already resolved"):
            await service.mentor_reply(mentor.id, thread.id, "one more thing")


class TestReopen:
    """Learner replies to resolved threads."""

    @pytest.mark.asyncio
    async def test_reopens_to_the_same_mentor(self, db_session: AsyncSession, learner, mentor):
        """A claimed thread reopens in-progress with its mentor and no resolution time."""
        service = DoubtService(db_session)
        thread = await _open(db_session, learner.id)
        await service.claim(mentor.id, thread.id)
        await service.mentor_resolve(mentor.id, thread.id)

        await service.user_reply(learner.id, thread.id, "Still confused")
        thread, messages = await service.user_thread(learner.id, thread.id)
        assert (thread.status, thread.mentor_id, thread.resolved_at) == ("in-progress", mentor.id, None)
        assert [m.message.message for m in messages][-1] == "Still confused"
        assert [t.id for t in await service.mentor_threads(mentor.id)] == [thread.id]

    @pytest.mark.asyncio
    async def test_unclaimed_thread_rejoins_queue(self, db_session: AsyncSession, learner):
        """A thread resolved before any claim goes back to the queue."""
        service = DoubtService(db_session)
        thread = await _open(db_session, learner.id)
        await service.user_resolve(learner.id, thread.id)
        await service.user_reply(learner.id, thread.id, "Actually, one more question")
        assert [t.id for t in await service.queue()] == [thread.id]


class TestPurge:
    """Retention of resolved threads."""

    @pytest.mark.asyncio
    async def test_purges_after_retention_window(self, db_session: AsyncSession, learner):
        """Resolved threads and their messages go once the window has passed; open ones stay."""
        service = DoubtService(db_session)
        resolved = await _open(db_session, learner.id)
        await service.user_reply(learner.id, resolved.id, "follow-up", now=T0)
        await service.user_resolve(learner.id, resolved.id, now=T0)
        still_open = await _open(db_session, learner.id)

        assert await service.purge_resolved(now=T0 + timedelta(hours=23)) == 0
        assert await service.purge_resolved(now=T0 + timedelta(hours=25)) == 1

        remaining = (await db_session.execute(select(DoubtThread.id))).scalars().all()
        assert remaining == [still_open.id]
        orphaned = await db_session.execute(
            select(func.count()).select_from(DoubtMessage).where(DoubtMessage.thread_id == resolved.id)
        )
        assert orphaned.scalar_one() == 0
