"""Progress service: per-user read-recompute-write with optimistic retries.

Every mutation reloads the user row, rebuilds the snapshot, runs a pure
mutator over it, and commits conditioned on the row version. A losing writer
re-runs the mutator against the fresh row, so no streak increment or award
from the winning write is ever overwritten.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from learnstack.catalog.service import CatalogService
from learnstack.catalog.snapshot import Catalog
from learnstack.config import get_settings
from learnstack.db.models import User
from learnstack.errors import ConcurrencyConflictError, NotFoundError
from learnstack.progress.activity import ActivityDelta, apply_activity
from learnstack.progress.engine import ProgressDelta, ProgressOutcome, apply_progress_update
from learnstack.progress.initializer import initialize_progress
from learnstack.progress.models import Profile, UserSnapshot
from learnstack.progress.store import apply_snapshot_to_row, new_user_row, snapshot_from_row
from learnstack.progress.unlock import (
    AccessResult,
    check_access,
    check_subject_access,
    effective_algorithm_status,
    effective_topic_status,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
Mutator = Callable[[UserSnapshot, Catalog | None], T]


def _status_text(snapshot: UserSnapshot, topic_id: str, is_globally_locked: bool, effective: str) -> str:
    entry = snapshot.progress.get(topic_id)
    override = entry.override if entry else None
    if override == "unlocked":
        return "Unlocked for User"
    if override == "locked":
        return "Locked for User"
    if effective != "locked":
        return effective.replace("-", " ").title()
    if is_globally_locked:
        return "Locked Globally"
    return "Locked (Prerequisites)"


class ProgressService:
    """Applies activity and progress events to one user's progress document."""

    def __init__(self, db: AsyncSession, redis: object | None = None) -> None:
        self.db = db
        self.redis = redis
        self.settings = get_settings()

    # --- Reads ---

    async def load_catalog(self) -> Catalog:
        return await CatalogService(self.db, self.redis).load_catalog()

    async def _catalog_or_none(self) -> Catalog | None:
        """Catalog for derived-state steps; None when the store is unreachable."""
        try:
            return await self.load_catalog()
        except SQLAlchemyError:
            logger.warning("Catalog read failed, derived stats will not be refreshed", exc_info=True)
            await self.db.rollback()
            return None

    async def _load_user(self, user_id: int) -> User:
        result = await self.db.execute(
            select(User).where(User.id == user_id).execution_options(populate_existing=True)
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError(f"User {user_id} not found", user_id=user_id)
        return user

    async def get_snapshot(self, user_id: int) -> UserSnapshot:
        return snapshot_from_row(await self._load_user(user_id))

    # --- Optimistic write loop ---

    async def mutate(
        self,
        user_id: int,
        mutator: Mutator[T],
        *,
        needs_catalog: bool = True,
        catalog: Catalog | None = None,
        touch: Callable[[User], None] | None = None,
    ) -> tuple[UserSnapshot, T]:
        """Run ``mutator`` against the latest user state and persist the result.

        Raises ConcurrencyConflictError once ``progress_max_retries`` retries
        have all lost the race. Errors raised by the mutator leave the stored
        document untouched.
        """
        if needs_catalog and catalog is None:
            catalog = await self._catalog_or_none()

        attempts = self.settings.progress_max_retries + 1
        for attempt in range(1, attempts + 1):
            user = await self._load_user(user_id)
            snapshot = snapshot_from_row(user)
            result = mutator(snapshot, catalog)
            apply_snapshot_to_row(snapshot, user)
            if touch is not None:
                touch(user)
            try:
                await self.db.commit()
            except StaleDataError:
                await self.db.rollback()
                logger.info("Write conflict for user %s (attempt %d/%d)", user_id, attempt, attempts)
                continue
            snapshot.version = user.version
            return snapshot, result

        logger.warning("Write for user %s still conflicting after %d attempts", user_id, attempts)
        raise ConcurrencyConflictError(
            f"User {user_id} was modified concurrently",
            user_id=user_id,
            attempts=attempts,
        )

    # --- Operations ---

    async def create_user(
        self,
        username: str,
        email: str,
        role: str = "user",
        profile: Profile | None = None,
    ) -> UserSnapshot:
        """Create a user together with its initialized progress tree in one insert."""
        catalog = await self.load_catalog()
        snapshot = initialize_progress(username, email, catalog)
        snapshot.role = role
        if profile is not None:
            snapshot.profile = profile

        user = new_user_row(snapshot)
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            msg = "Username or email already registered"
            raise ValueError(msg) from e

        logger.info("Created user %s with %d topics", user.id, len(snapshot.progress))
        return snapshot_from_row(user)

    async def record_activity(
        self,
        user_id: int,
        delta: ActivityDelta,
        now: datetime | None = None,
    ) -> UserSnapshot:
        retention = self.settings.daily_activity_retention_days

        def _apply(snapshot: UserSnapshot, _catalog: Catalog | None) -> None:
            apply_activity(snapshot, delta, now=now, retention_days=retention)

        snapshot, _ = await self.mutate(user_id, _apply, needs_catalog=False)
        return snapshot

    async def record_login(self, user_id: int, now: datetime | None = None) -> UserSnapshot:
        """Streak bookkeeping for a login (an all-zero activity delta)."""
        if now is None:
            now = datetime.now(timezone.utc)
        retention = self.settings.daily_activity_retention_days

        def _apply(snapshot: UserSnapshot, _catalog: Catalog | None) -> None:
            apply_activity(snapshot, ActivityDelta(session=True), now=now, retention_days=retention)

        def _touch(user: User) -> None:
            user.last_login = now

        snapshot, _ = await self.mutate(user_id, _apply, needs_catalog=False, touch=_touch)
        return snapshot

    async def update_progress(
        self,
        user_id: int,
        topic_id: str,
        algorithm_id: str,
        delta: ProgressDelta,
        now: datetime | None = None,
    ) -> tuple[UserSnapshot, ProgressOutcome]:
        retention = self.settings.daily_activity_retention_days

        def _apply(snapshot: UserSnapshot, catalog: Catalog | None) -> ProgressOutcome:
            return apply_progress_update(
                snapshot, catalog, topic_id, algorithm_id, delta, now=now, retention_days=retention
            )

        snapshot, outcome = await self.mutate(user_id, _apply)
        if outcome.warnings:
            logger.warning("Progress update for user %s degraded: %s", user_id, ", ".join(outcome.warnings))
        return snapshot, outcome

    async def update_profile(
        self,
        user_id: int,
        first_name: str | None = None,
        last_name: str | None = None,
        bio: str | None = None,
    ) -> UserSnapshot:
        """Plain profile edit; derived stats are not recomputed. None leaves a field as is."""
        changes = {"first_name": first_name, "last_name": last_name, "bio": bio}
        updates = {k: v for k, v in changes.items() if v is not None}

        def _apply(snapshot: UserSnapshot, _catalog: Catalog | None) -> None:
            snapshot.profile = snapshot.profile.model_copy(update=updates)

        snapshot, _ = await self.mutate(user_id, _apply, needs_catalog=False)
        return snapshot

    async def check_access(self, user_id: int, topic_id: str, algorithm_id: str | None = None) -> AccessResult:
        catalog = await self.load_catalog()
        snapshot = await self.get_snapshot(user_id)
        return check_access(snapshot, catalog, topic_id, algorithm_id)

    async def check_subject_access(self, user_id: int, subject: str) -> bool:
        catalog = await self.load_catalog()
        snapshot = await self.get_snapshot(user_id)
        return check_subject_access(snapshot, catalog, subject)

    async def topic_statuses(self, user_id: int) -> dict[str, list[dict]]:
        """Effective status of every catalog topic and algorithm, grouped by subject."""
        catalog = await self.load_catalog()
        snapshot = await self.get_snapshot(user_id)

        grouped: dict[str, list[dict]] = {}
        for topic in catalog.topics:
            effective = effective_topic_status(snapshot, topic)
            entry = snapshot.progress.get(topic.id)
            grouped.setdefault(topic.subject, []).append({
                "id": topic.id,
                "name": topic.name,
                "effective_status": effective,
                "status_text": _status_text(snapshot, topic.id, topic.is_globally_locked, effective),
                "completion": entry.completion if entry else 0,
                "is_globally_locked": topic.is_globally_locked,
                "algorithms": [
                    {
                        "id": algo.id,
                        "name": algo.name,
                        "effective_status": effective_algorithm_status(snapshot, topic, algo),
                        "completed": bool(entry and algo.id in entry.algorithms and entry.algorithms[algo.id].completed),
                        "is_globally_locked": algo.is_globally_locked,
                    }
                    for algo in topic.algorithms
                ],
            })
        return grouped
