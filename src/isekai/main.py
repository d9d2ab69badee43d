"""FastAPI application factory."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from isekai.admin.router import router as admin_router
from isekai.announcements.router import router as announcements_router
from isekai.auth.router import router as auth_router
from isekai.catalog.router import router as catalog_router
from isekai.catalog.seed import seed_categories, seed_voting_period
from isekai.config import Settings, get_settings
from isekai.database import close_db, init_db, session_scope
from isekai.gamification.router import router as gamification_router
from isekai.gamification.seed import seed_achievements
from isekai.health.router import router as health_router
from isekai.middleware import setup_middleware
from isekai.redis_client import close_redis, init_redis
from isekai.users.router import router as users_router
from isekai.voting.router import router as voting_router
from isekai.ws.bridge import PubSubBridge
from isekai.ws.broadcaster import RedisBroadcaster
from isekai.ws.manager import ConnectionManager
from isekai.ws.router import router as ws_router

logger = structlog.get_logger()


async def seed_reference_data(settings: Settings) -> None:
    """Idempotently load achievements, default categories and the first voting period."""
    async with session_scope() as db:
        await seed_achievements(db)
        await seed_categories(db)
        await seed_voting_period(db, settings.voting_period_days)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url, echo=settings.debug)
    redis = await init_redis(settings.redis_url, settings.redis_max_connections)

    if settings.seed_reference_data:
        try:
            await seed_reference_data(settings)
        except Exception:
            logger.warning("seed_failed", exc_info=True)

    app.state.broadcaster = RedisBroadcaster(redis)
    bridge = PubSubBridge(redis, app.state.ws_manager)
    bridge_task = asyncio.create_task(bridge.start())

    yield

    await bridge.stop()
    bridge_task.cancel()
    try:
        await bridge_task
    except asyncio.CancelledError:
        pass

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Isekai Awards API",
        description="Voting backend for the Isekai Awards",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.ws_manager = ConnectionManager(settings.ws_max_connections_per_user)

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(catalog_router)
    app.include_router(voting_router)
    app.include_router(gamification_router)
    app.include_router(announcements_router)
    app.include_router(admin_router)
    app.include_router(ws_router)

    return app


app = create_app()
