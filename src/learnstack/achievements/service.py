"""Achievement evaluation service.

Evaluation runs inside the progress service's optimistic write loop, so the
"already earned" check is repeated against the freshly read row on every
retry and concurrent evaluations cannot both append the same id.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from learnstack.achievements.engine import TemplateRule, award_achievements
from learnstack.catalog.snapshot import Catalog
from learnstack.config import get_settings
from learnstack.db.models import AchievementTemplate
from learnstack.progress.models import EarnedAchievement, UserSnapshot
from learnstack.progress.service import ProgressService

logger = logging.getLogger(__name__)

THROTTLE_KEY = "achievements:checked:{user_id}"


class AchievementService:
    """Loads active templates and awards newly satisfied ones to a user."""

    def __init__(self, db: AsyncSession, redis: object | None = None) -> None:
        self.db = db
        self.redis = redis
        self.interval = get_settings().achievement_check_interval_seconds

    async def list_templates(self, active_only: bool = True) -> list[AchievementTemplate]:
        stmt = select(AchievementTemplate).order_by(AchievementTemplate.sort_order, AchievementTemplate.id)
        if active_only:
            stmt = stmt.where(AchievementTemplate.is_active.is_(True))
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def _recently_checked(self, user_id: int) -> bool:
        """Claim the per-user throttle window; True if another check holds it."""
        if self.redis is None or self.interval <= 0:
            return False
        try:
            claimed = await self.redis.set(THROTTLE_KEY.format(user_id=user_id), "1", nx=True, ex=self.interval)
        except Exception:
            logger.warning("Achievement throttle unavailable for user %s", user_id, exc_info=True)
            return False
        return not claimed

    async def evaluate(
        self,
        user_id: int,
        event: str | None = None,
        *,
        force: bool = False,
        now: datetime | None = None,
    ) -> tuple[list[EarnedAchievement], UserSnapshot | None]:
        """Award newly satisfied achievements.

        Plain evaluations (no event) are throttled per user; event-bearing
        ones and ``force=True`` always run. Returns the awards and the updated
        snapshot, or ``([], None)`` when skipped or templates are unavailable.
        """
        if not force and event is None and await self._recently_checked(user_id):
            return [], None

        try:
            templates = await self.list_templates()
        except SQLAlchemyError:
            logger.warning("Achievement templates unavailable, skipping evaluation", exc_info=True)
            await self.db.rollback()
            return [], None

        rules = [TemplateRule(id=t.id, points=t.points, criteria=dict(t.criteria or {})) for t in templates]

        def _award(snapshot: UserSnapshot, _catalog: Catalog | None) -> list[EarnedAchievement]:
            return award_achievements(snapshot, rules, event=event, now=now)

        snapshot, awarded = await ProgressService(self.db, self.redis).mutate(user_id, _award, needs_catalog=False)
        if awarded:
            logger.info("User %s earned %s", user_id, ", ".join(a.id for a in awarded))
        return awarded, snapshot
