"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from coursefinder.catalog.router import router as catalog_router
from coursefinder.config import Settings, get_settings
from coursefinder.database import close_db, init_db
from coursefinder.health.router import router as health_router
from coursefinder.middleware import setup_middleware
from coursefinder.ratelimit.limiter import RateLimiter, build_rate_limiter
from coursefinder.redirect.clicks import ClickRecorder, SqlClickWriter
from coursefinder.redirect.router import router as redirect_router
from coursefinder.roadmaps.router import router as roadmaps_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings: Settings = app.state.settings
    await init_db(settings.database_url)
    logger.info("startup", environment=settings.environment, rate_limit_backend=settings.rate_limit_backend)

    yield

    # Let in-flight click writes land before the engine goes away
    await app.state.click_recorder.drain()
    await app.state.rate_limiter.close()
    await close_db()


def create_app(
    settings: Settings | None = None,
    *,
    rate_limiter: RateLimiter | None = None,
    click_recorder: ClickRecorder | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    The rate limiter and click recorder are built once here and shared by
    every request through ``app.state``; tests pass their own.
    """
    settings = settings or get_settings()
    limiter = rate_limiter or build_rate_limiter(
        settings.rate_limit_backend,
        max_tracked=settings.rate_limit_max_tracked,
        redis_url=settings.redis_url,
    )

    app = FastAPI(
        title="Coursefinder API",
        description="Course discovery catalog: search, coupon pricing and tracked outbound links",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.rate_limiter = limiter
    app.state.click_recorder = click_recorder or ClickRecorder(SqlClickWriter())

    setup_middleware(app, settings, limiter)
    app.include_router(health_router, tags=["Health"])
    app.include_router(catalog_router)
    app.include_router(roadmaps_router)
    app.include_router(redirect_router)

    return app


app = create_app()
