"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from teamtrack.config import get_settings
from teamtrack.database import close_db, init_db
from teamtrack.health.router import router as health_router
from teamtrack.middleware import setup_middleware
from teamtrack.redis_client import close_redis, init_redis
from teamtrack.teams.router import router as teams_router
from teamtrack.tracking.anticheat import install_travel_guard, uninstall_travel_guard
from teamtrack.tracking.router import router as tracking_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)
    install_travel_guard(settings.max_travel_speed_mps)
    logger.info(
        "teamtrack_started",
        environment=settings.environment,
        max_travel_speed_mps=settings.max_travel_speed_mps,
    )

    yield

    uninstall_travel_guard()
    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="TeamTrack API",
        description="Shared team state for location-based team games",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(teams_router)
    app.include_router(tracking_router)

    return app


app = create_app()
