"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from learnstack.achievements.router import router as achievements_router
from learnstack.achievements.seed import seed_achievements
from learnstack.admin.router import router as admin_router
from learnstack.assessments.router import router as assessments_router
from learnstack.catalog.router import router as catalog_router
from learnstack.catalog.seed import seed_catalog
from learnstack.config import get_settings
from learnstack.database import close_db, create_schema, get_session_factory, init_db
from learnstack.doubts.router import router as doubts_router
from learnstack.health.router import router as health_router
from learnstack.leaderboard.router import router as leaderboard_router
from learnstack.middleware import setup_middleware
from learnstack.progress.router import router as progress_router
from learnstack.redis_client import close_redis, init_redis
from learnstack.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await create_schema()
    redis_connected = await init_redis(settings.redis_url)

    # Seed catalog and achievement templates (idempotent)
    if settings.seed_on_startup:
        async with get_session_factory()() as db:
            await seed_catalog(db)
            await seed_achievements(db)

    logger.info("startup_complete", environment=settings.environment, redis=redis_connected)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="LearnStack API",
        description="Learning progress, unlocks, achievements and leaderboards",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(catalog_router)
    app.include_router(users_router)
    app.include_router(progress_router)
    app.include_router(achievements_router)
    app.include_router(leaderboard_router)
    app.include_router(admin_router)
    app.include_router(assessments_router)
    app.include_router(doubts_router)

    return app


app = create_app()
