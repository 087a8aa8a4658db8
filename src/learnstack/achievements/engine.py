"""Achievement award engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from learnstack.achievements.criteria import EVENT_GATED, evaluate_criteria
from learnstack.progress.models import EarnedAchievement, UserSnapshot
from learnstack.progress.rank import compute_rank


@dataclass(frozen=True)
class TemplateRule:
    """The parts of an achievement template the engine needs."""

    id: str
    points: int
    criteria: dict[str, Any] = field(default_factory=dict)


def award_achievements(
    snapshot: UserSnapshot,
    templates: list[TemplateRule],
    event: str | None = None,
    now: datetime | None = None,
) -> list[EarnedAchievement]:
    """Append every newly satisfied template to ``snapshot.achievements``.

    Already-earned ids are skipped before their criteria are evaluated, so a
    second run over unchanged state awards nothing. Each award adds its points
    to the rank and re-derives the level; later templates in the same batch
    see the updated points.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    awarded: list[EarnedAchievement] = []
    for template in templates:
        if snapshot.has_achievement(template.id):
            continue
        required_event = EVENT_GATED.get(template.criteria.get("type", ""))
        if required_event is not None and required_event != event:
            continue
        if not evaluate_criteria(template.criteria, snapshot, now):
            continue

        earned = EarnedAchievement(
            id=template.id,
            points=template.points,
            earned_at=now,
            criteria=dict(template.criteria),
        )
        snapshot.achievements.append(earned)
        snapshot.stats.rank.points += template.points
        snapshot.stats.rank.level = compute_rank(snapshot.stats.rank.points)
        awarded.append(earned)
    return awarded
