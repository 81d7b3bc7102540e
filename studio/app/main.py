import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from studio.app.actions import StudioActions
from studio.app.api import assets_router, generation_router, rate_limit_router
from studio.app.core.config import Settings, settings as default_settings
from studio.app.core.http_client import init_http_client
from studio.app.core.logging import get_log_context, get_logger, setup_logging
from studio.app.db.async_session import close_async_engine, init_async_db
from studio.app.exceptions import StudioException
from studio.app.middleware.client_identity import ClientIdentityMiddleware, get_request_id
from studio.app.middleware.rate_limit import (
    RateLimiter,
    build_rate_limits,
    create_bucket_store,
)
from studio.app.providers import ChatProvider, ImageProvider

logger = get_logger(__name__)


async def run_periodic_cleanup(limiter: RateLimiter, interval_seconds: float) -> None:
    """Drop idle buckets every interval_seconds until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            removed = await limiter.cleanup()
        except Exception:
            logger.exception("Rate limit bucket cleanup failed")
            continue
        if removed:
            logger.debug(f"Rate limit cleanup removed {removed} idle buckets")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    The bucket store and rate limiter are built here and owned by the app
    (app.state.limiter). Providers and actions need the shared HTTP client,
    so they are built in the lifespan (app.state.actions).

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or default_settings
    setup_logging()

    store = create_bucket_store(settings)
    limiter = RateLimiter(
        store=store,
        limits=build_rate_limits(settings),
        precise_retry_after=settings.rate_limit_precise_retry_after,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan context manager.

        Opens the shared HTTP client and the database on startup, starts the
        bucket cleanup task, and releases everything on shutdown.
        """
        async with init_http_client(settings) as http_client:
            await init_async_db(settings)

            chat_provider = ChatProvider(
                base_url=settings.chat_base_url,
                api_key=settings.chat_api_key,
                http_client=http_client,
            )
            image_provider = ImageProvider(
                base_url=settings.image_base_url,
                api_key=settings.image_api_key,
                http_client=http_client,
            )
            app.state.actions = StudioActions(limiter, chat_provider, image_provider, settings)

            cleanup_task = None
            if settings.rate_limit_cleanup_interval_seconds > 0:
                cleanup_task = asyncio.create_task(
                    run_periodic_cleanup(limiter, settings.rate_limit_cleanup_interval_seconds)
                )

            logger.info(
                "Application startup complete",
                extra={
                    "rate_limit_backend": settings.rate_limit_backend,
                    "debug_mode": settings.debug,
                },
            )

            yield

            if cleanup_task is not None:
                cleanup_task.cancel()
                try:
                    await cleanup_task
                except asyncio.CancelledError:
                    pass

        await limiter.store.close()
        await close_async_engine()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="Thought Leadership Studio",
        description="AI content studio with per-client token bucket rate limiting",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.limiter = limiter

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(ClientIdentityMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
        max_age=600,
    )

    app.include_router(generation_router)
    app.include_router(assets_router)
    app.include_router(rate_limit_router)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Liveness check."""
        return {
            "status": "ok",
            "rate_limit_backend": settings.rate_limit_backend,
        }

    @app.exception_handler(StudioException)
    async def studio_exception_handler(request: Request, exc: StudioException) -> JSONResponse:
        """Render StudioException subclasses with their own status code."""
        request_id = get_request_id(request)
        if exc.status_code >= 500:
            logger.error(
                f"{type(exc).__name__}: {exc.message}",
                extra=get_log_context(request_id=request_id),
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": type(exc).__name__,
                "message": exc.message,
                "request_id": request_id,
            },
        )

    return app


# Create the application instance
app = create_app()
