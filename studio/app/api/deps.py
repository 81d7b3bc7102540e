"""FastAPI dependencies resolving app-owned objects from request.app.state."""

from typing import Annotated

from fastapi import Depends, Request

from studio.app.actions import StudioActions
from studio.app.middleware.rate_limit import RateLimiter


def get_actions(request: Request) -> StudioActions:
    return request.app.state.actions


def get_limiter(request: Request) -> RateLimiter:
    return request.app.state.limiter


ActionsDep = Annotated[StudioActions, Depends(get_actions)]
LimiterDep = Annotated[RateLimiter, Depends(get_limiter)]
