"""Unlock resolver: effective lock status, access gating, and path advancement.

Effective status combines three signals, strongest first:

1. a global lock on the catalog entry, unless the user holds an explicit
   ``unlocked`` override;
2. unmet prerequisites, under the same exception;
3. the user's own tracked status.

A tracked ``locked`` status without an explicit ``locked`` override is a stale
copy of a lock that no longer applies and resolves to ``available``. A locked
topic locks all of its algorithms regardless of their overrides.
"""

from __future__ import annotations

from dataclasses import dataclass

from learnstack.catalog.snapshot import Catalog, CatalogAlgorithm, CatalogTopic
from learnstack.errors import NotFoundError
from learnstack.progress.models import AlgorithmProgress, LockOverride, TopicProgress, UserSnapshot


@dataclass(frozen=True)
class AccessResult:
    has_access: bool
    effective_status: str


def topic_prerequisites_met(snapshot: UserSnapshot, prerequisites: list[str]) -> bool:
    """Each prerequisite must be in ``completed_topics`` and at 100% completion."""
    for prereq in prerequisites:
        if prereq not in snapshot.learning_path.completed_topics:
            return False
        entry = snapshot.progress.get(prereq)
        if entry is None or entry.completion != 100:
            return False
    return True


def algorithm_prerequisites_met(topic_progress: TopicProgress | None, prerequisites: list[str]) -> bool:
    if not prerequisites:
        return True
    if topic_progress is None:
        return False
    for prereq in prerequisites:
        entry = topic_progress.algorithms.get(prereq)
        if entry is None or not entry.completed:
            return False
    return True


def effective_topic_status(snapshot: UserSnapshot, topic: CatalogTopic) -> str:
    entry = snapshot.progress.get(topic.id)
    override = entry.override if entry else None
    unlocked = override == "unlocked"

    if topic.is_globally_locked and not unlocked:
        return "locked"
    if not unlocked and not topic_prerequisites_met(snapshot, topic.prerequisites):
        return "locked"
    if entry is None:
        return "available"
    if entry.status == "locked" and override != "locked":
        return "available"
    return entry.status


def effective_algorithm_status(snapshot: UserSnapshot, topic: CatalogTopic, algorithm: CatalogAlgorithm) -> str:
    if effective_topic_status(snapshot, topic) == "locked":
        return "locked"

    topic_progress = snapshot.progress.get(topic.id)
    entry = topic_progress.algorithms.get(algorithm.id) if topic_progress else None
    override = entry.override if entry else None
    unlocked = override == "unlocked"

    if algorithm.is_globally_locked and not unlocked:
        return "locked"
    if not unlocked and not algorithm_prerequisites_met(topic_progress, algorithm.prerequisites):
        return "locked"
    if entry is None:
        return "available"
    if entry.status == "locked" and override != "locked":
        return "available"
    return entry.status


def check_access(
    snapshot: UserSnapshot,
    catalog: Catalog,
    topic_id: str,
    algorithm_id: str | None = None,
) -> AccessResult:
    """Read-only gate used before granting access to content."""
    topic = catalog.topic(topic_id)
    if topic is None:
        raise NotFoundError(f"Topic {topic_id} not found", topic_id=topic_id)

    if algorithm_id is None:
        status = effective_topic_status(snapshot, topic)
    else:
        algorithm = topic.algorithm(algorithm_id)
        if algorithm is None:
            raise NotFoundError(
                f"Algorithm {algorithm_id} not found in topic {topic_id}",
                topic_id=topic_id,
                algorithm_id=algorithm_id,
            )
        status = effective_algorithm_status(snapshot, topic, algorithm)
    return AccessResult(has_access=status != "locked", effective_status=status)


def check_subject_access(snapshot: UserSnapshot, catalog: Catalog, subject: str) -> bool:
    """A subject is accessible when any of its topics is effectively not locked."""
    return any(effective_topic_status(snapshot, t) != "locked" for t in catalog.topics_for_subject(subject))


def unlock_next_topic(snapshot: UserSnapshot, catalog: Catalog, topic_id: str) -> str | None:
    """Open the successor of a completed topic and advance the current-topic pointer.

    Returns the id of the topic that became current, or None when the pointer
    did not move.
    """
    path = snapshot.learning_path
    if topic_id not in path.topic_order:
        return None
    index = path.topic_order.index(topic_id)
    if index + 1 >= len(path.topic_order):
        return None

    next_id = path.topic_order[index + 1]
    next_topic = catalog.topic(next_id)
    next_entry = snapshot.progress.get(next_id)
    if next_topic is None or next_entry is None:
        return None

    if next_entry.status == "locked" and topic_prerequisites_met(snapshot, next_topic.prerequisites):
        next_entry.status = "available"
        next_entry.override = None

    current = snapshot.progress.get(topic_id)
    current_done = current is not None and current.completion == 100
    if (
        path.current_topic == topic_id
        and current_done
        and effective_topic_status(snapshot, next_topic) != "locked"
    ):
        path.current_topic = next_id
        return next_id
    return None


def set_topic_override(snapshot: UserSnapshot, catalog: Catalog | None, topic_id: str, locked: bool) -> TopicProgress:
    """Admin user-scope lock/unlock of a topic. Creates the entry when missing."""
    entry = snapshot.progress.get(topic_id)
    if entry is None:
        if catalog is None or catalog.topic(topic_id) is None:
            raise NotFoundError(f"Topic {topic_id} not found", topic_id=topic_id)
        entry = snapshot.progress[topic_id] = TopicProgress()
    override: LockOverride = "locked" if locked else "unlocked"
    entry.override = override
    if locked:
        entry.status = "locked"
    elif entry.status == "locked":
        entry.status = "available"
    return entry


def set_algorithm_override(
    snapshot: UserSnapshot,
    catalog: Catalog | None,
    topic_id: str,
    algorithm_id: str,
    locked: bool,
) -> AlgorithmProgress:
    """Admin user-scope lock/unlock of one algorithm. Creates entries when missing."""
    topic_entry = snapshot.progress.get(topic_id)
    entry = topic_entry.algorithms.get(algorithm_id) if topic_entry else None
    if entry is None:
        topic = catalog.topic(topic_id) if catalog else None
        if topic is None or topic.algorithm(algorithm_id) is None:
            raise NotFoundError(
                f"Algorithm {algorithm_id} not found in topic {topic_id}",
                topic_id=topic_id,
                algorithm_id=algorithm_id,
            )
        if topic_entry is None:
            topic_entry = snapshot.progress[topic_id] = TopicProgress()
        entry = topic_entry.algorithms[algorithm_id] = AlgorithmProgress()
    entry.override = "locked" if locked else "unlocked"
    entry.status = "locked" if locked else "available"
    return entry
