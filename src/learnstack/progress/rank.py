"""Rank thresholds and computation."""

from __future__ import annotations

from learnstack.progress.models import RankLevel

RANK_THRESHOLDS: list[tuple[RankLevel, int]] = [
    ("Bronze", 0),
    ("Silver", 500),
    ("Gold", 2000),
    ("Platinum", 5000),
    ("Diamond", 10000),
]


def compute_rank(points: int) -> RankLevel:
    """Highest rank whose threshold does not exceed ``points``."""
    level: RankLevel = RANK_THRESHOLDS[0][0]
    for name, threshold in RANK_THRESHOLDS:
        if points >= threshold:
            level = name
    return level


def points_to_next_rank(points: int) -> int | None:
    """Points still needed for the next rank, or None at the top rank."""
    for _, threshold in RANK_THRESHOLDS:
        if points < threshold:
            return threshold - points
    return None
