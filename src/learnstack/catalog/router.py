"""Catalog API endpoints (read-only)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from learnstack.catalog.schemas import (
    AlgorithmResponse,
    SubjectResponse,
    TopicDetailResponse,
    TopicListResponse,
    TopicResponse,
)
from learnstack.catalog.service import CatalogService
from learnstack.catalog.snapshot import CatalogTopic
from learnstack.dependencies import get_db, get_redis_dep

router = APIRouter(prefix="/api/v1", tags=["Catalog"])


def _topic_response(topic: CatalogTopic) -> TopicResponse:
    return TopicResponse(
        **topic.model_dump(exclude={"algorithms"}),
        algorithm_count=len(topic.algorithms),
    )


@router.get("/subjects", response_model=list[SubjectResponse])
async def list_subjects(
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    subjects = await CatalogService(db, redis).list_subjects()
    return [SubjectResponse(name=s.name, description=s.description, icon=s.icon, color=s.color) for s in subjects]


@router.get("/topics", response_model=TopicListResponse)
async def list_topics(
    subject: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    """Active topics in learning order, optionally for one subject."""
    catalog = await CatalogService(db, redis).load_catalog()
    topics = catalog.topics_for_subject(subject) if subject else catalog.topics
    return TopicListResponse(
        topics=[_topic_response(t) for t in topics],
        total_algorithms=sum(len(t.algorithms) for t in topics),
    )


@router.get("/topics/{topic_id}", response_model=TopicDetailResponse)
async def get_topic(
    topic_id: str,
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    topic = await CatalogService(db, redis).get_topic(topic_id)
    return TopicDetailResponse(
        **_topic_response(topic).model_dump(),
        algorithms=[AlgorithmResponse(**a.model_dump()) for a in topic.algorithms],
    )


@router.get("/topics/{topic_id}/algorithms", response_model=list[AlgorithmResponse])
async def list_topic_algorithms(
    topic_id: str,
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    topic = await CatalogService(db, redis).get_topic(topic_id)
    return [AlgorithmResponse(**a.model_dump()) for a in topic.algorithms]
