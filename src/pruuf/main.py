"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from pruuf.breaks.router import router as breaks_router
from pruuf.config import get_settings
from pruuf.connections.router import router as connections_router
from pruuf.database import close_db, init_db
from pruuf.entitlement.router import router as entitlement_router
from pruuf.health.router import router as health_router
from pruuf.middleware import setup_middleware
from pruuf.pings.router import router as pings_router
from pruuf.redis_client import close_redis, init_redis
from pruuf.streaks.router import router as streaks_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    if settings.redis_url:
        await init_redis(settings.redis_url)
    logger.info("Pruuf ping engine started (environment=%s)", settings.environment)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Pruuf Ping Engine",
        description="Daily check-in lifecycle: generation, completion, missed detection, and streaks",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(pings_router)
    app.include_router(streaks_router)
    app.include_router(entitlement_router)
    app.include_router(breaks_router)
    app.include_router(connections_router)

    return app


app = create_app()
