"""Progress-tree initialization at account creation."""

from __future__ import annotations

from learnstack.catalog.snapshot import Catalog
from learnstack.progress.models import AlgorithmProgress, LearningPath, TopicProgress, UserSnapshot


def initialize_progress(username: str, email: str, catalog: Catalog) -> UserSnapshot:
    """Build a new user's progress tree and learning path from the active catalog.

    Every active topic gets an entry in catalog order; its status is ``locked``
    only when the topic is globally locked. Every algorithm starts
    ``available`` and not completed. The current topic is the first topic, or
    None for an empty catalog.
    """
    topics = sorted(catalog.topics, key=lambda t: t.order)

    progress: dict[str, TopicProgress] = {}
    topic_order: list[str] = []
    for topic in topics:
        topic_order.append(topic.id)
        progress[topic.id] = TopicProgress(
            status="locked" if topic.is_globally_locked else "available",
            algorithms={algo.id: AlgorithmProgress() for algo in topic.algorithms},
        )

    return UserSnapshot(
        username=username,
        email=email,
        progress=progress,
        learning_path=LearningPath(
            current_topic=topic_order[0] if topic_order else None,
            topic_order=topic_order,
        ),
    )
