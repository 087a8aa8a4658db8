"""Progress update pipeline.

One progress report flows through: access gate, algorithm progress merge,
activity tracker, stats recalculator, unlock resolver. The caller persists the
mutated snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from learnstack.catalog.snapshot import Catalog
from learnstack.errors import AccessDeniedError, NotFoundError
from learnstack.progress.activity import ActivityDelta, apply_activity
from learnstack.progress.models import AlgorithmProgress, TopicProgress, UserSnapshot
from learnstack.progress.stats import recalculate_stats, round_half_up
from learnstack.progress.unlock import effective_algorithm_status, unlock_next_topic

CATALOG_UNAVAILABLE = "catalog_unavailable"


class ProgressDelta(BaseModel):
    completed: bool | None = None
    time_spent_viz: int = Field(default=0, ge=0)  # seconds
    time_spent_practice: int = Field(default=0, ge=0)  # seconds
    accuracy_practice: int | None = Field(default=None, ge=0, le=100)
    time_practice: float | None = Field(default=None, gt=0)  # seconds, candidate best time
    points_practice: int | None = Field(default=None, ge=0)

    @property
    def is_practice_report(self) -> bool:
        return (
            self.accuracy_practice is not None
            or self.time_practice is not None
            or self.points_practice is not None
        )


@dataclass
class ProgressOutcome:
    topic_id: str
    algorithm_id: str
    newly_completed: bool = False
    topic_completed: bool = False
    advanced_to: str | None = None
    warnings: list[str] = field(default_factory=list)


def seconds_to_minutes(seconds: int) -> int:
    """Activity minutes for a time report: at least one minute for any positive time."""
    if seconds <= 0:
        return 0
    return max(1, round_half_up(seconds / 60))


def _resolve_entries(
    snapshot: UserSnapshot,
    catalog: Catalog | None,
    topic_id: str,
    algorithm_id: str,
) -> tuple[TopicProgress, AlgorithmProgress]:
    topic_entry = snapshot.progress.get(topic_id)

    if catalog is None:
        # Degraded mode: validate against the user's own tree only.
        algo_entry = topic_entry.algorithms.get(algorithm_id) if topic_entry else None
        if topic_entry is None or algo_entry is None:
            raise NotFoundError(
                f"Algorithm {algorithm_id} not found in topic {topic_id}",
                topic_id=topic_id,
                algorithm_id=algorithm_id,
            )
        if topic_entry.status == "locked" or algo_entry.status == "locked":
            raise AccessDeniedError(
                f"Algorithm {algorithm_id} is locked",
                topic_id=topic_id,
                algorithm_id=algorithm_id,
                effective_status="locked",
            )
        return topic_entry, algo_entry

    topic = catalog.topic(topic_id)
    if topic is None:
        raise NotFoundError(f"Topic {topic_id} not found", topic_id=topic_id)
    algorithm = topic.algorithm(algorithm_id)
    if algorithm is None:
        raise NotFoundError(
            f"Algorithm {algorithm_id} not found in topic {topic_id}",
            topic_id=topic_id,
            algorithm_id=algorithm_id,
        )

    status = effective_algorithm_status(snapshot, topic, algorithm)
    if status == "locked":
        raise AccessDeniedError(
            f"Algorithm {algorithm_id} is locked",
            topic_id=topic_id,
            algorithm_id=algorithm_id,
            effective_status=status,
        )

    # Catalog content added after signup is enriched lazily.
    if topic_entry is None:
        topic_entry = snapshot.progress[topic_id] = TopicProgress()
    algo_entry = topic_entry.algorithms.get(algorithm_id)
    if algo_entry is None:
        algo_entry = topic_entry.algorithms[algorithm_id] = AlgorithmProgress()

    # Access was granted, so a tracked lock is stale.
    if topic_entry.status == "locked":
        topic_entry.status = "available"
    if algo_entry.status == "locked":
        algo_entry.status = "available"
    return topic_entry, algo_entry


def apply_progress_update(
    snapshot: UserSnapshot,
    catalog: Catalog | None,
    topic_id: str,
    algorithm_id: str,
    delta: ProgressDelta,
    now: datetime | None = None,
    retention_days: int = 90,
) -> ProgressOutcome:
    """Apply one visualization/practice report to ``snapshot`` in place.

    With ``catalog=None`` (catalog unreachable) the report is still recorded
    and the activity ledger updated, but stats and unlocks are left untouched
    and a ``catalog_unavailable`` warning is returned.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    outcome = ProgressOutcome(topic_id=topic_id, algorithm_id=algorithm_id)
    topic_entry, entry = _resolve_entries(snapshot, catalog, topic_id, algorithm_id)

    if topic_entry.started_at is None:
        topic_entry.started_at = now

    if delta.time_spent_viz:
        entry.time_spent_viz += delta.time_spent_viz
        entry.last_attempt_viz = now
    if delta.time_spent_practice:
        entry.time_spent_practice += delta.time_spent_practice
        entry.last_attempt_practice = now

    points_gained = 0
    if delta.is_practice_report:
        entry.attempts_practice += 1
        entry.last_attempt_practice = now
        if delta.accuracy_practice is not None:
            entry.accuracy_practice = max(entry.accuracy_practice, delta.accuracy_practice)
        if delta.time_practice is not None and (
            entry.best_time_practice is None or delta.time_practice < entry.best_time_practice
        ):
            entry.best_time_practice = delta.time_practice
        if delta.points_practice is not None and delta.points_practice > entry.points_practice:
            points_gained = delta.points_practice - entry.points_practice
            entry.points_practice = delta.points_practice

    if delta.completed and not entry.completed:
        entry.completed = True
        entry.completed_at = now
        outcome.newly_completed = True

    minutes = seconds_to_minutes(delta.time_spent_viz + delta.time_spent_practice)
    topic_entry.total_time += minutes

    attempted = bool(minutes or delta.is_practice_report or outcome.newly_completed)
    apply_activity(
        snapshot,
        ActivityDelta(
            time_spent=minutes,
            algorithms_attempted=1 if attempted else 0,
            algorithms_completed=1 if outcome.newly_completed else 0,
            points_earned=points_gained,
            topic=topic_id,
        ),
        now=now,
        retention_days=retention_days,
    )

    if catalog is None:
        outcome.warnings.append(CATALOG_UNAVAILABLE)
        return outcome

    recalculate_stats(snapshot, catalog, now=now)
    if topic_entry.completion == 100:
        outcome.topic_completed = True
        outcome.advanced_to = unlock_next_topic(snapshot, catalog, topic_id)
    return outcome
