"""Rate limit status endpoint for the caller's own buckets."""

from fastapi import APIRouter, HTTPException, Request, status
from pydantic import BaseModel

from studio.app.api.deps import LimiterDep
from studio.app.exceptions import RateLimitConfigError
from studio.app.middleware.client_identity import get_client_identifier

router = APIRouter(prefix="/api/rate-limit", tags=["rate-limit"])


class RateLimitStatusResponse(BaseModel):
    rate_class: str
    tokens_remaining: int
    max_tokens: int


@router.get("/{rate_class}", response_model=RateLimitStatusResponse)
async def get_rate_limit_status(
    rate_class: str,
    request: Request,
    limiter: LimiterDep,
) -> RateLimitStatusResponse:
    """Current token level of the caller's bucket. Spends nothing."""
    identifier = getattr(request.state, "client_identifier", None) or get_client_identifier()
    try:
        current = await limiter.get_rate_limit_status(identifier, rate_class)
    except RateLimitConfigError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e
    return RateLimitStatusResponse(
        rate_class=rate_class,
        tokens_remaining=current.tokens_remaining,
        max_tokens=current.max_tokens,
    )
