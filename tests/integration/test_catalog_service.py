"""Catalog service tests: DB reads, Redis cache, global locks."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from learnstack.catalog.service import CATALOG_CACHE_KEY, CatalogService
from learnstack.catalog.snapshot import Catalog
from learnstack.db.models import Topic
from learnstack.errors import NotFoundError


class TestLoadCatalog:
    """Reading the catalog from the database."""

    @pytest.mark.asyncio
    async def test_ordered_topics_and_algorithms(self, db_session: AsyncSession):
        """Topics and algorithms load in order with prerequisites."""
        catalog = await CatalogService(db_session).load_catalog()
        assert [t.id for t in catalog.topics] == ["searching", "sorting", "cBasics"]
        assert [a.id for a in catalog.topic("searching").algorithms] == ["linearSearch", "binarySearch"]
        assert catalog.topic("sorting").prerequisites == ["searching"]
        assert catalog.total_algorithms == 6

    @pytest.mark.asyncio
    async def test_inactive_topics_hidden(self, db_session: AsyncSession):
        """Inactive topics and their subjects drop out of the catalog."""
        topic = await db_session.get(Topic, "cBasics")
        topic.is_active = False
        await db_session.commit()
        catalog = await CatalogService(db_session).load_catalog()
        assert catalog.topic("cBasics") is None
        assert catalog.subjects == ["DSA Visualizer"]

    @pytest.mark.asyncio
    async def test_get_topic_unknown(self, db_session: AsyncSession):
        """An unknown topic is NotFound."""
        with pytest.raises(NotFoundError):
            await CatalogService(db_session).get_topic("graphs")

    @pytest.mark.asyncio
    async def test_list_subjects(self, db_session: AsyncSession):
        """Subjects list in catalog order."""
        subjects = await CatalogService(db_session).list_subjects()
        assert [s.name for s in subjects] == ["DSA Visualizer", "C Programming"]


class TestCache:
    """The Redis-cached catalog."""

    @pytest.mark.asyncio
    async def test_served_from_cache(self, db_session: AsyncSession, fake_redis):
        """A loaded catalog is cached and later served from the cache."""
        service = CatalogService(db_session, fake_redis)
        await service.load_catalog()
        assert CATALOG_CACHE_KEY in fake_redis.store

        fake_redis.store[CATALOG_CACHE_KEY] = Catalog(topics=[]).model_dump_json()
        assert (await service.load_catalog()).topics == []

    @pytest.mark.asyncio
    async def test_global_lock_invalidates(self, db_session: AsyncSession, fake_redis):
        """A global lock drops the cached catalog."""
        service = CatalogService(db_session, fake_redis)
        await service.load_catalog()

        await service.set_topic_global_lock("sorting", True)
        assert CATALOG_CACHE_KEY not in fake_redis.store
        catalog = await service.load_catalog()
        assert catalog.topic("sorting").is_globally_locked is True

    @pytest.mark.asyncio
    async def test_broken_cache_falls_back_to_db(self, db_session: AsyncSession):
        """A failing Redis falls back to the database."""
        class BrokenRedis:
            async def get(self, key):
                raise ConnectionError("redis down")

            async def setex(self, key, seconds, value):
                raise ConnectionError("redis down")

        catalog = await CatalogService(db_session, BrokenRedis()).load_catalog()
        assert len(catalog.topics) == 3


class TestGlobalLocks:
    """Catalog-wide lock flags."""

    @pytest.mark.asyncio
    async def test_algorithm_lock(self, db_session: AsyncSession):
        """An algorithm lock flags only that algorithm."""
        service = CatalogService(db_session)
        await service.set_algorithm_global_lock("searching", "linearSearch", True)
        catalog = await service.load_catalog()
        assert catalog.topic("searching").algorithm("linearSearch").is_globally_locked is True
        assert catalog.topic("searching").algorithm("binarySearch").is_globally_locked is False

    @pytest.mark.asyncio
    async def test_subject_lock(self, db_session: AsyncSession):
        """A subject lock flags each topic of the subject."""
        topics = await CatalogService(db_session).set_subject_global_lock("DSA Visualizer", True)
        assert sorted(t.id for t in topics) == ["searching", "sorting"]

    @pytest.mark.asyncio
    async def test_unknown_targets(self, db_session: AsyncSession):
        """Locking an unknown topic, algorithm or subject is NotFound."""
        service = CatalogService(db_session)
        with pytest.raises(NotFoundError):
            await service.set_topic_global_lock("graphs", True)
        with pytest.raises(NotFoundError):
            await service.set_algorithm_global_lock("searching", "jumpSearch", True)
        with pytest.raises(NotFoundError):
            await service.set_subject_global_lock("Rust", True)
