"""Rate limiting data models.

This module contains dataclasses for limit configuration, token bucket
state and the results handed back to callers.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from studio.app.exceptions import RateLimitConfigError


class RateLimitClass(str, Enum):
    """Category of protected operation, each with its own bucket."""
    IDEATION = "ideation"
    RESEARCH = "research"
    WRITING = "writing"
    IMAGE = "image"


@dataclass(frozen=True)
class RateLimitConfig:
    """Static bucket configuration for one rate limit class.

    Attributes:
        max_tokens: Bucket capacity (burst allowance)
        refill_rate: Tokens granted per elapsed refill interval
        refill_interval_ms: Length of one refill interval in milliseconds
    """
    max_tokens: int
    refill_rate: int
    refill_interval_ms: int

    def __post_init__(self):
        if self.refill_rate <= 0:
            raise RateLimitConfigError(
                f"refill_rate must be positive, got {self.refill_rate}"
            )
        if self.max_tokens < self.refill_rate:
            raise RateLimitConfigError(
                f"max_tokens ({self.max_tokens}) must be >= refill_rate ({self.refill_rate})"
            )
        if self.refill_interval_ms <= 0:
            raise RateLimitConfigError(
                f"refill_interval_ms must be positive, got {self.refill_interval_ms}"
            )

    @property
    def full_refill_ms(self) -> int:
        """Time an empty bucket needs to become full again."""
        return math.ceil(self.max_tokens / self.refill_rate) * self.refill_interval_ms


@dataclass
class TokenBucket:
    """Token bucket state for one (identifier, class) pair."""
    tokens: int
    last_refill: int  # epoch milliseconds


@dataclass
class AdmissionResult:
    """Result of a rate limit check.

    retry_after_ms is only set (and always positive) when the request
    was denied.
    """
    allowed: bool
    tokens_remaining: int
    limit: int
    retry_after_ms: Optional[int] = None


@dataclass
class RateLimitStatus:
    """Read-only view of a bucket, for display."""
    tokens_remaining: int
    max_tokens: int


@dataclass
class RateLimitExceeded:
    """Value returned by a rate limited handler instead of its own result.

    A normal outcome, not an error: callers branch on ``rate_limited``.
    """
    retry_after_seconds: int
    error: str = ""
    rate_limited: bool = field(default=True, init=False)

    def __post_init__(self):
        if not self.error:
            self.error = (
                f"Rate limit exceeded. Please try again in "
                f"{self.retry_after_seconds} seconds."
            )

    @classmethod
    def from_admission(cls, result: AdmissionResult) -> "RateLimitExceeded":
        """Build the denial value for a rejected admission check."""
        return cls(retry_after_seconds=math.ceil((result.retry_after_ms or 0) / 1000))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the response body shape."""
        return {
            "error": self.error,
            "rateLimited": self.rate_limited,
            "retryAfter": self.retry_after_seconds,
        }
