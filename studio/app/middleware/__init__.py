"""Middleware package for the studio."""

from studio.app.middleware.client_identity import (
    ClientIdentityMiddleware,
    get_client_identifier,
    get_request_id,
)
from studio.app.middleware.rate_limit import RateLimiter

__all__ = [
    "ClientIdentityMiddleware",
    "get_client_identifier",
    "get_request_id",
    "RateLimiter",
]
