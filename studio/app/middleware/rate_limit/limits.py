"""Rate limit table for the studio operations."""

from types import MappingProxyType
from typing import Dict, Mapping, Optional

from studio.app.core.config import Settings
from studio.app.exceptions import RateLimitConfigError
from studio.app.middleware.rate_limit.models import RateLimitClass, RateLimitConfig

HOUR_MS = 60 * 60 * 1000

DEFAULT_RATE_LIMITS: Mapping[RateLimitClass, RateLimitConfig] = MappingProxyType({
    # Ideation: 10 requests per hour
    RateLimitClass.IDEATION: RateLimitConfig(max_tokens=10, refill_rate=10, refill_interval_ms=HOUR_MS),
    # Research: 10 requests per hour
    RateLimitClass.RESEARCH: RateLimitConfig(max_tokens=10, refill_rate=10, refill_interval_ms=HOUR_MS),
    # Writing: 20 requests per hour (includes refinements)
    RateLimitClass.WRITING: RateLimitConfig(max_tokens=20, refill_rate=20, refill_interval_ms=HOUR_MS),
    # Image generation: 30 requests per hour
    RateLimitClass.IMAGE: RateLimitConfig(max_tokens=30, refill_rate=30, refill_interval_ms=HOUR_MS),
})


def resolve_rate_class(name: "str | RateLimitClass") -> RateLimitClass:
    """Map a class name to its enum member.

    Raises:
        RateLimitConfigError: If the name is not a known rate limit class
    """
    try:
        return RateLimitClass(name)
    except ValueError:
        known = ", ".join(c.value for c in RateLimitClass)
        raise RateLimitConfigError(
            f"Unknown rate limit class '{name}' (expected one of: {known})"
        ) from None


def build_rate_limits(
    settings: Optional[Settings] = None,
) -> Mapping[RateLimitClass, RateLimitConfig]:
    """Build the read-only limit table, applying configured overrides.

    Overrides are partial: any field left out keeps its default.

    Raises:
        RateLimitConfigError: On unknown classes, unknown fields or invalid values
    """
    overrides: Dict[str, Dict[str, int]] = settings.rate_limit_overrides if settings else {}
    if not overrides:
        return DEFAULT_RATE_LIMITS

    limits = dict(DEFAULT_RATE_LIMITS)
    for name, fields in overrides.items():
        rate_class = resolve_rate_class(name)
        merged = {
            "max_tokens": limits[rate_class].max_tokens,
            "refill_rate": limits[rate_class].refill_rate,
            "refill_interval_ms": limits[rate_class].refill_interval_ms,
        }
        unknown = set(fields) - set(merged)
        if unknown:
            raise RateLimitConfigError(
                f"Unknown rate limit fields for '{name}': {', '.join(sorted(unknown))}"
            )
        merged.update(fields)
        limits[rate_class] = RateLimitConfig(**merged)
    return MappingProxyType(limits)
