"""Client identity middleware.

Derives the rate limit client identifier from request metadata and makes
it available to code that has no access to the request object (the rate
limited actions) through a context variable.
"""

import uuid
from contextvars import ContextVar
from typing import Mapping, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

# Identifier used when no request is in flight (scripts, tests, background work)
ANONYMOUS_CLIENT = "unknown-unknown"

MAX_IDENTIFIER_LENGTH = 100

_client_identifier_var: ContextVar[Optional[str]] = ContextVar(
    "client_identifier", default=None
)


def derive_client_identifier(headers: Mapping[str, str], fallback_ip: Optional[str] = None) -> str:
    """Build the client identifier from request headers.

    Uses the first X-Forwarded-For entry, then X-Real-IP, then the
    connection address, combined with the User-Agent.

    Args:
        headers: Request headers (case-insensitive mapping)
        fallback_ip: Connection peer address, if known

    Returns:
        Identifier string, at most 100 characters
    """
    ip = None
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip() or None
    if not ip:
        ip = (headers.get("x-real-ip") or "").strip() or fallback_ip or "unknown"
    user_agent = headers.get("user-agent") or "unknown"
    return f"{ip}-{user_agent}"[:MAX_IDENTIFIER_LENGTH]


def get_client_identifier() -> str:
    """Get the client identifier of the request being handled."""
    return _client_identifier_var.get() or ANONYMOUS_CLIENT


def set_client_identifier(identifier: Optional[str]):
    """Set the client identifier for the current context.

    Returns:
        Token for ContextVar.reset
    """
    return _client_identifier_var.set(identifier)


def reset_client_identifier(token) -> None:
    _client_identifier_var.reset(token)


class ClientIdentityMiddleware(BaseHTTPMiddleware):
    """Middleware to resolve the client identifier and request ID.

    The client identifier is:
    1. Derived from proxy headers and User-Agent
    2. Added to request.state for access in endpoints
    3. Stored in a context variable for the rate limited actions

    The request ID is taken from X-Request-ID or generated, and echoed
    in the response.
    """

    def __init__(self, app, header_name: str = "X-Request-ID"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(self.header_name) or str(uuid.uuid4())
        request.state.request_id = request_id

        client_ip = request.client.host if request.client else None
        identifier = derive_client_identifier(request.headers, client_ip)
        request.state.client_identifier = identifier

        token = set_client_identifier(identifier)
        try:
            response = await call_next(request)
        finally:
            reset_client_identifier(token)

        response.headers[self.header_name] = request_id
        return response


def get_request_id(request: Request) -> str:
    """Get request ID from request state."""
    return getattr(request.state, "request_id", "unknown")
