"""Leaderboard service.

Boards are regenerated wholesale from user stats and stored one row per type.
The all-time board also takes incremental single-user upserts so a user sees
their new position right after earning points.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog
from pydantic import TypeAdapter
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from learnstack.config import get_settings
from learnstack.db.models import Leaderboard, User
from learnstack.errors import ConcurrencyConflictError, NotFoundError
from learnstack.leaderboard.ranking import (
    LEADERBOARD_TYPES,
    build_rankings,
    compute_metrics,
    compute_score,
    get_period,
    upsert_ranking,
)
from learnstack.progress.models import DailyActivityRecord, UserStats

logger = structlog.get_logger()

_activity_adapter = TypeAdapter(list[DailyActivityRecord])


def _aware(dt: datetime | None) -> datetime | None:
    """SQLite drops tzinfo; stored values are always UTC."""
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _entry(
    board_type: str,
    user_id: int,
    username: str,
    stats_data: dict,
    activity_data: list,
    start: datetime,
    end: datetime | None,
) -> dict[str, Any]:
    stats = UserStats.model_validate(stats_data or {})
    activity = _activity_adapter.validate_python(activity_data or [])
    return {
        "user_id": user_id,
        "username": username,
        "score": compute_score(board_type, stats, activity, start, end),
        "metrics": compute_metrics(stats),
    }


def _find(board: Leaderboard, user_id: int) -> dict[str, Any] | None:
    return next((r for r in board.rankings if r["user_id"] == user_id), None)


class LeaderboardService:
    """Generates, stores and reads leaderboards."""

    def __init__(self, db: AsyncSession, redis: object | None = None) -> None:
        self.db = db
        self.redis = redis
        self.settings = get_settings()
        self.size = self.settings.leaderboard_size

    @staticmethod
    def _check_type(board_type: str) -> None:
        if board_type not in LEADERBOARD_TYPES:
            raise ValueError(f"Unknown leaderboard type: {board_type}")

    def _conflict(self, board_type: str, attempts: int) -> ConcurrencyConflictError:
        logger.warning("leaderboard_write_conflict_exhausted", type=board_type, attempts=attempts)
        return ConcurrencyConflictError(
            f"Leaderboard {board_type} was modified concurrently",
            board_type=board_type,
            attempts=attempts,
        )

    async def _load_board(self, board_type: str) -> Leaderboard | None:
        return await self.db.get(Leaderboard, board_type, populate_existing=True)

    async def regenerate(self, board_type: str, now: datetime | None = None) -> Leaderboard:
        """Rebuild one board from every user's current stats."""
        self._check_type(board_type)
        if now is None:
            now = datetime.now(timezone.utc)
        start, end = get_period(board_type, now)

        attempts = self.settings.progress_max_retries + 1
        for attempt in range(1, attempts + 1):
            result = await self.db.execute(select(User.id, User.username, User.stats, User.daily_activity))
            entries = [
                _entry(board_type, row.id, row.username, row.stats, row.daily_activity, start, end)
                for row in result
            ]
            if board_type != "all-time":
                entries = [e for e in entries if e["score"] > 0]

            board = await self.db.merge(
                Leaderboard(
                    type=board_type,
                    period_start=start,
                    period_end=end,
                    rankings=build_rankings(entries, self.size),
                    last_updated=now,
                )
            )
            try:
                await self.db.commit()
            except (StaleDataError, IntegrityError):
                # Another writer updated or first-inserted the row
                await self.db.rollback()
                logger.info("leaderboard_write_conflict", type=board_type, attempt=attempt, attempts=attempts)
                continue
            logger.info("leaderboard_regenerated", type=board_type, entries=len(board.rankings))
            return board

        raise self._conflict(board_type, attempts)

    async def get_leaderboard(self, board_type: str, now: datetime | None = None) -> Leaderboard:
        """Stored board, regenerated when missing or from an earlier period."""
        self._check_type(board_type)
        board = await self.db.get(Leaderboard, board_type)
        start, _ = get_period(board_type, now)
        if board is None or _aware(board.period_start) != start:
            board = await self.regenerate(board_type, now)
        return board

    async def update_user_position(self, user_id: int, now: datetime | None = None) -> dict[str, Any] | None:
        """Upsert one user into the all-time board and return their entry.

        The upsert is applied to a freshly read board. When another writer
        commits the board first, both rows are read again and the upsert is
        redone, so concurrent upserts never drop each other's entries.
        """
        if now is None:
            now = datetime.now(timezone.utc)
        start, end = get_period("all-time")

        attempts = self.settings.progress_max_retries + 1
        for attempt in range(1, attempts + 1):
            user = await self.db.get(User, user_id, populate_existing=True)
            if user is None:
                raise NotFoundError(f"User {user_id} not found", user_id=user_id)

            board = await self._load_board("all-time")
            if board is None:
                board = await self.regenerate("all-time", now)
                return _find(board, user_id)

            entry = _entry("all-time", user.id, user.username, user.stats, user.daily_activity, start, end)
            board.rankings = upsert_ranking(list(board.rankings or []), entry, self.size)
            board.last_updated = now
            try:
                await self.db.commit()
            except StaleDataError:
                await self.db.rollback()
                logger.info("leaderboard_write_conflict", type="all-time", user_id=user_id, attempt=attempt)
                continue
            return _find(board, user_id)

        raise self._conflict("all-time", attempts)

    async def get_user_position(self, user_id: int, board_type: str = "all-time") -> dict[str, Any] | None:
        return _find(await self.get_leaderboard(board_type), user_id)
