"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures middleware, background sweeps, and lifespan events.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from psycopg_pool import AsyncConnectionPool

from ezclip.adapters.repository.postgres import PostgresDocumentStore, run_migrations
from ezclip.api.dependencies import Services, build_services
from ezclip.api.v1 import router as v1_router
from ezclip.config.settings import Settings, get_settings
from ezclip.domain.ports import EventKind

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Signup with phone verification, login, contact form and download tracking",
    },
    {
        "name": "admin",
        "description": "Admin dashboard over users and tracked events",
    },
]

# Paths never recorded as website visits
UNTRACKED_PREFIXES = ("/v1/", "/health", "/docs", "/redoc", "/openapi.json")


async def run_periodically(interval_seconds: float, job: Callable[[], object], name: str) -> None:
    """
    Run a synchronous job every interval_seconds until cancelled.

    A failing run is logged and the timer keeps going.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            job()
        except Exception:
            logger.exception("Periodic %s failed", name)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates database connection pool and runs migrations when DATABASE_URL is set
    - Builds the shared services (unless already provided on app.state)
    - Starts the verification sweep and event cleanup timers
    - Cancels the timers and closes the pool on shutdown
    """
    settings: Settings = app.state.settings

    logger.info("Starting application...")

    pool: AsyncConnectionPool | None = None
    if getattr(app.state, "services", None) is None:
        document_store = None
        if settings.database_url:
            logger.info("Connecting to database...")
            pool = AsyncConnectionPool(
                conninfo=settings.database_url,
                min_size=settings.pool_min_size,
                max_size=settings.pool_max_size,
                open=False,
            )
            await pool.open()

            logger.info("Running database migrations...")
            await run_migrations(pool)
            document_store = PostgresDocumentStore(pool)
        else:
            logger.warning("DATABASE_URL not configured - using in-memory event storage (development only)")

        app.state.services = build_services(settings, document_store=document_store)

    services: Services = app.state.services
    app.state.pool = pool

    timers = [
        asyncio.create_task(
            run_periodically(
                settings.verification_sweep_interval_seconds,
                services.registration.sweep_expired,
                "verification sweep",
            )
        ),
        asyncio.create_task(
            run_periodically(
                settings.event_cleanup_interval_seconds,
                services.events.cleanup,
                "event cleanup",
            )
        ),
    ]

    logger.info("Application startup complete (environment=%s)", settings.environment)

    yield

    # Shutdown
    logger.info("Shutting down application...")
    for timer in timers:
        timer.cancel()
    await asyncio.gather(*timers, return_exceptions=True)

    if pool is not None:
        await pool.close()
        logger.info("Database connection pool closed")


def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Application settings, defaults to get_settings()
        services: Pre-built services; when omitted the lifespan builds them
    """
    settings = settings or get_settings()

    application = FastAPI(
        title="ezclip",
        description="EzClippin backend - phone-verified signup and bounded event analytics",
        version="0.1.0",
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )
    application.state.settings = settings
    application.state.services = services

    application.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.client_url] if settings.client_url else ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include v1 API routes
    application.include_router(v1_router, prefix="/v1")

    @application.middleware("http")
    async def track_visits(request: Request, call_next: Callable) -> Response:
        """Record page views (GET, non-API, no file extension) as visits."""
        path = request.url.path
        services = getattr(request.app.state, "services", None)
        if (
            services is not None
            and request.method == "GET"
            and not path.startswith(UNTRACKED_PREFIXES)
            and "." not in path.rsplit("/", 1)[-1]
        ):
            await services.events.append(
                EventKind.VISITS,
                {
                    "ip": request.client.host if request.client else None,
                    "userAgent": request.headers.get("user-agent"),
                    "path": path,
                    "referrer": request.headers.get("referer") or "direct",
                },
            )
        return await call_next(request)

    @application.get("/health")
    async def health_check(request: Request) -> dict[str, str]:
        """
        Health check endpoint with database validation.

        Returns 200 OK if the application (and database, when configured)
        is healthy. Raises exception if database connection fails.
        """
        pool = getattr(request.app.state, "pool", None)
        if pool is not None:
            async with pool.connection() as conn:
                await conn.execute("SELECT 1")

        return {
            "status": "healthy",
            "service": "EzClippin API",
            "storage": "postgres" if pool is not None else "memory",
        }

    return application


app = create_app()
