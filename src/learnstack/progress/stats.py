"""Derived statistics: completion percentages, overall progress, accuracy, rank."""

from __future__ import annotations

import math
from datetime import datetime, timezone

from learnstack.catalog.snapshot import Catalog
from learnstack.progress.models import UserSnapshot
from learnstack.progress.rank import compute_rank


def round_half_up(value: float) -> int:
    """Nearest integer, with halves rounded up (2.5 -> 3, unlike ``round``)."""
    return int(math.floor(value + 0.5))


def percent(part: int, whole: int) -> int:
    """Percentage rounded half-up."""
    return round_half_up(100 * part / whole)


def recalculate_stats(snapshot: UserSnapshot, catalog: Catalog, now: datetime | None = None) -> None:
    """Recompute every derived numeric field of ``snapshot`` in place.

    Completion math uses the algorithms currently defined in the catalog as the
    denominator, never the algorithm keys the user happens to carry. A topic
    that is tracked as ``locked`` keeps its status.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    path = snapshot.learning_path

    algorithms_completed = 0
    completed_defined = 0
    accuracy_samples: list[int] = []

    for topic_id, topic_progress in snapshot.progress.items():
        topic = catalog.topic(topic_id)
        defined = {a.id for a in topic.algorithms} if topic else set()
        total = len(defined)

        done = [aid for aid, ap in topic_progress.algorithms.items() if ap.completed]
        algorithms_completed += len(done)
        done_defined = sum(1 for aid in done if aid in defined)
        completed_defined += done_defined

        topic_progress.completion = percent(done_defined, total) if total > 0 else 0

        if topic_progress.status != "locked":
            if topic_progress.completion == 100 and total > 0:
                topic_progress.status = "completed"
                if topic_progress.completed_at is None:
                    topic_progress.completed_at = now
                if topic_id not in path.completed_topics:
                    path.completed_topics.append(topic_id)
            elif topic_progress.completion > 0 and topic_progress.status == "available":
                topic_progress.status = "in-progress"

        accuracy_samples.extend(
            ap.accuracy_practice for ap in topic_progress.algorithms.values() if ap.attempts_practice > 0
        )

    stats = snapshot.stats
    stats.algorithms_completed = algorithms_completed
    total_defined = catalog.total_algorithms
    stats.overall_progress = percent(completed_defined, total_defined) if total_defined > 0 else 100
    stats.average_accuracy = (
        int(math.floor(sum(accuracy_samples) / len(accuracy_samples) + 0.5)) if accuracy_samples else 0
    )
    stats.rank.level = compute_rank(stats.rank.points)
