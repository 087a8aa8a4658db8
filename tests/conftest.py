"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from helpers import FakeRedis, build_catalog
from learnstack.achievements.seed import seed_achievements
from learnstack.catalog.seed import seed_catalog
from learnstack.catalog.snapshot import Catalog
from learnstack.database import close_db, create_schema, get_session_factory, init_db
from learnstack.progress.models import UserSnapshot
from learnstack.progress.service import ProgressService
from learnstack.redis_client import close_redis


@pytest.fixture
def catalog() -> Catalog:
    return build_catalog()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[None, None]:
    """Fresh SQLite database file with the full schema for each test."""
    await close_redis()
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'learnstack.db'}")
    await create_schema()
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Session with the seed catalog and achievement templates loaded."""
    async with get_session_factory()() as session:
        await seed_catalog(session)
        await seed_achievements(session)
        yield session


@pytest_asyncio.fixture
async def create_user(db_session: AsyncSession) -> Callable[..., Awaitable[UserSnapshot]]:
    """Factory creating users through the progress service."""
    counter = 0

    async def _create(username: str | None = None, role: str = "user") -> UserSnapshot:
        nonlocal counter
        counter += 1
        name = username or f"learner{counter}"
        async with get_session_factory()() as session:
            return await ProgressService(session).create_user(name, f"{name}@example.com", role=role)

    return _create


@pytest.fixture
def app() -> FastAPI:
    from learnstack.main import create_app

    return create_app()


@pytest_asyncio.fixture
async def client(app: FastAPI, db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client over the ASGI app, backed by the seeded test database."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
