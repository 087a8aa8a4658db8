"""Leaderboard periods, scoring and ranking (pure functions)."""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone
from typing import Any

from learnstack.progress.models import DailyActivityRecord, UserStats

LEADERBOARD_TYPES: tuple[str, ...] = ("daily", "weekly", "monthly", "all-time")
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def get_period(board_type: str, now: datetime | None = None) -> tuple[datetime, datetime | None]:
    """UTC (start, end) for a board; the all-time board has no end."""
    if now is None:
        now = datetime.now(timezone.utc)
    today = now.astimezone(timezone.utc).date()

    if board_type == "daily":
        start_day, end_day = today, today + timedelta(days=1)
    elif board_type == "weekly":
        start_day = today - timedelta(days=today.weekday())
        end_day = start_day + timedelta(days=7)
    elif board_type == "monthly":
        start_day = today.replace(day=1)
        end_day = (start_day + timedelta(days=32)).replace(day=1)
    elif board_type == "all-time":
        return EPOCH, None
    else:
        raise ValueError(f"Unknown leaderboard type: {board_type}")

    return (
        datetime.combine(start_day, time.min, tzinfo=timezone.utc),
        datetime.combine(end_day, time.min, tzinfo=timezone.utc),
    )


def compute_score(
    board_type: str,
    stats: UserStats,
    daily_activity: list[DailyActivityRecord],
    start: datetime,
    end: datetime | None,
) -> int:
    """All-time ranks by rank points; periodic boards by points earned inside the period."""
    if board_type == "all-time" or end is None:
        return stats.rank.points
    first, last = start.date(), end.date()
    return sum(r.points_earned for r in daily_activity if first <= r.date < last)


def compute_metrics(stats: UserStats) -> dict[str, int]:
    return {
        "algorithms_completed": stats.algorithms_completed,
        "average_accuracy": stats.average_accuracy,
        "time_spent": stats.time_spent.total,
        "streak": stats.streak.current,
    }


def _sort_key(entry: dict[str, Any]) -> tuple[int, str]:
    return (-entry["score"], entry["username"])


def build_rankings(entries: list[dict[str, Any]], size: int) -> list[dict[str, Any]]:
    """Top ``size`` entries by score (ties broken by username), numbered from 1."""
    ranked = sorted(entries, key=_sort_key)[:size]
    return [{**entry, "position": i} for i, entry in enumerate(ranked, start=1)]


def upsert_ranking(rankings: list[dict[str, Any]], entry: dict[str, Any], size: int) -> list[dict[str, Any]]:
    """Insert or replace one user's entry, then re-sort and renumber."""
    others = [r for r in rankings if r["user_id"] != entry["user_id"]]
    return build_rankings([*others, entry], size)
