"""Shared HTTP client management for connection pooling.

One httpx.AsyncClient is created in the application lifespan and shared by
every provider.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx

from studio.app.core.config import Settings, settings as default_settings


def build_timeout(settings: Settings) -> httpx.Timeout:
    """Granular timeouts: connect, read (long, for image generation), write, pool."""
    return httpx.Timeout(
        connect=settings.httpx_connect_timeout,
        read=settings.httpx_read_timeout,
        write=settings.httpx_write_timeout,
        pool=settings.httpx_pool_timeout,
    )


@asynccontextmanager
async def init_http_client(
    settings: Settings = default_settings,
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Create the shared HTTP client and close it on exit.

    Use in the FastAPI lifespan:

        async with init_http_client() as http_client:
            yield
    """
    limits = httpx.Limits(
        max_connections=settings.httpx_max_connections,
        max_keepalive_connections=settings.httpx_max_keepalive_connections,
        keepalive_expiry=settings.httpx_keepalive_expiry,
    )
    client = httpx.AsyncClient(timeout=build_timeout(settings), limits=limits)
    try:
        yield client
    finally:
        await client.aclose()
