"""Immutable view of the active catalog used by the progress engine."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

TopicDifficulty = Literal["beginner", "intermediate", "advanced"]
AlgorithmDifficulty = Literal["easy", "medium", "hard"]


class CatalogAlgorithm(BaseModel):
    id: str
    name: str
    difficulty: AlgorithmDifficulty = "easy"
    points: int = 0
    prerequisites: list[str] = Field(default_factory=list)
    is_globally_locked: bool = False


class CatalogTopic(BaseModel):
    id: str
    name: str
    subject: str
    order: int
    estimated_time: int = 0
    difficulty: TopicDifficulty = "beginner"
    prerequisites: list[str] = Field(default_factory=list)
    is_globally_locked: bool = False
    algorithms: list[CatalogAlgorithm] = Field(default_factory=list)

    def algorithm(self, algorithm_id: str) -> CatalogAlgorithm | None:
        """Look up an algorithm definition by id."""
        for algo in self.algorithms:
            if algo.id == algorithm_id:
                return algo
        return None


class Catalog(BaseModel):
    """Active topics sorted by ``order``, each with its ordered algorithms."""

    topics: list[CatalogTopic] = Field(default_factory=list)

    def topic(self, topic_id: str) -> CatalogTopic | None:
        """Look up a topic definition by id."""
        for topic in self.topics:
            if topic.id == topic_id:
                return topic
        return None

    def topics_for_subject(self, subject: str) -> list[CatalogTopic]:
        return [t for t in self.topics if t.subject == subject]

    @property
    def total_algorithms(self) -> int:
        return sum(len(t.algorithms) for t in self.topics)

    @property
    def subjects(self) -> list[str]:
        seen: list[str] = []
        for topic in self.topics:
            if topic.subject not in seen:
                seen.append(topic.subject)
        return seen
