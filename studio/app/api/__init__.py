"""API endpoints package for the studio."""

from studio.app.api.assets import router as assets_router
from studio.app.api.generation import router as generation_router
from studio.app.api.rate_limit import router as rate_limit_router

__all__ = [
    "assets_router",
    "generation_router",
    "rate_limit_router",
]
