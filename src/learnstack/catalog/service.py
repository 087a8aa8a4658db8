"""Catalog reader with a short-TTL Redis cache.

The catalog changes rarely, so the assembled snapshot is cached as JSON under a
single key and dropped whenever an admin write touches topics or algorithms.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from learnstack.catalog.snapshot import Catalog, CatalogAlgorithm, CatalogTopic
from learnstack.config import get_settings
from learnstack.db.models import Algorithm, Subject, Topic
from learnstack.errors import NotFoundError

logger = logging.getLogger(__name__)

CATALOG_CACHE_KEY = "catalog:active"


def _to_snapshot(topic: Topic) -> CatalogTopic:
    return CatalogTopic(
        id=topic.id,
        name=topic.name,
        subject=topic.subject,
        order=topic.order,
        estimated_time=topic.estimated_time,
        difficulty=topic.difficulty,
        prerequisites=list(topic.prerequisites or []),
        is_globally_locked=topic.is_globally_locked,
        algorithms=[
            CatalogAlgorithm(
                id=a.id,
                name=a.name,
                difficulty=a.difficulty,
                points=a.points,
                prerequisites=list(a.prerequisites or []),
                is_globally_locked=a.is_globally_locked,
            )
            for a in topic.algorithms
        ],
    )


class CatalogService:
    """Reads the active catalog and applies admin global-lock writes."""

    def __init__(self, db: AsyncSession, redis: object | None = None) -> None:
        self.db = db
        self.redis = redis
        self.ttl = get_settings().catalog_cache_ttl_seconds

    async def load_catalog(self) -> Catalog:
        """Return active topics sorted by order, each with its algorithms."""
        if self.redis is not None:
            try:
                cached = await self.redis.get(CATALOG_CACHE_KEY)
                if cached:
                    return Catalog.model_validate_json(cached)
            except Exception:
                logger.warning("Catalog cache read failed", exc_info=True)

        catalog = await self._load_from_db()

        if self.redis is not None:
            try:
                await self.redis.setex(CATALOG_CACHE_KEY, self.ttl, catalog.model_dump_json())
            except Exception:
                logger.warning("Catalog cache write failed", exc_info=True)
        return catalog

    async def _load_from_db(self) -> Catalog:
        result = await self.db.execute(
            select(Topic)
            .where(Topic.is_active.is_(True))
            .options(selectinload(Topic.algorithms))
            .order_by(Topic.order, Topic.id)
        )
        return Catalog(topics=[_to_snapshot(t) for t in result.scalars()])

    async def invalidate(self) -> None:
        """Drop the cached snapshot so the next read sees admin edits."""
        if self.redis is None:
            return
        try:
            await self.redis.delete(CATALOG_CACHE_KEY)
        except Exception:
            logger.warning("Catalog cache invalidation failed", exc_info=True)

    async def get_topic(self, topic_id: str) -> CatalogTopic:
        catalog = await self.load_catalog()
        topic = catalog.topic(topic_id)
        if topic is None:
            raise NotFoundError(f"Topic {topic_id} not found", topic_id=topic_id)
        return topic

    async def list_subjects(self) -> list[Subject]:
        result = await self.db.execute(select(Subject).order_by(Subject.sort_order, Subject.name))
        return list(result.scalars())

    # --- Admin global locks ---

    async def set_topic_global_lock(self, topic_id: str, locked: bool) -> Topic:
        topic = await self.db.get(Topic, topic_id)
        if topic is None:
            raise NotFoundError(f"Topic {topic_id} not found", topic_id=topic_id)
        topic.is_globally_locked = locked
        await self.db.commit()
        await self.invalidate()
        logger.info("Topic %s globally %s", topic_id, "locked" if locked else "unlocked")
        return topic

    async def set_algorithm_global_lock(self, topic_id: str, algorithm_id: str, locked: bool) -> Algorithm:
        algorithm = await self.db.get(Algorithm, (topic_id, algorithm_id))
        if algorithm is None:
            raise NotFoundError(
                f"Algorithm {algorithm_id} not found in topic {topic_id}",
                topic_id=topic_id,
                algorithm_id=algorithm_id,
            )
        algorithm.is_globally_locked = locked
        await self.db.commit()
        await self.invalidate()
        logger.info("Algorithm %s/%s globally %s", topic_id, algorithm_id, "locked" if locked else "unlocked")
        return algorithm

    async def set_subject_global_lock(self, subject: str, locked: bool) -> list[Topic]:
        result = await self.db.execute(select(Topic).where(Topic.subject == subject))
        topics = list(result.scalars())
        if not topics:
            raise NotFoundError(f"Subject {subject} has no topics", subject=subject)
        for topic in topics:
            topic.is_globally_locked = locked
        await self.db.commit()
        await self.invalidate()
        logger.info("Subject %s globally %s (%d topics)", subject, "locked" if locked else "unlocked", len(topics))
        return topics
