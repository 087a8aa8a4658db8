"""Pydantic response models for catalog endpoints."""

from __future__ import annotations

from pydantic import BaseModel


class SubjectResponse(BaseModel):
    name: str
    description: str
    icon: str | None = None
    color: str | None = None


class AlgorithmResponse(BaseModel):
    id: str
    name: str
    difficulty: str
    points: int
    prerequisites: list[str] = []
    is_globally_locked: bool = False


class TopicResponse(BaseModel):
    id: str
    name: str
    subject: str
    order: int
    estimated_time: int
    difficulty: str
    prerequisites: list[str] = []
    is_globally_locked: bool = False
    algorithm_count: int = 0


class TopicDetailResponse(TopicResponse):
    algorithms: list[AlgorithmResponse] = []


class TopicListResponse(BaseModel):
    topics: list[TopicResponse]
    total_algorithms: int
