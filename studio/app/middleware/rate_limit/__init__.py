"""Token bucket rate limiting for the studio operations.

Each client gets one bucket per rate limit class. Every protected
operation spends tokens; buckets refill lazily, in whole intervals, when
they are next looked at. Buckets live in a BucketStore (in-memory or
Redis) owned by whoever builds the RateLimiter, normally create_app().
"""

import functools
import time
from typing import Awaitable, Callable, Mapping, Optional, TypeVar, Union

from studio.app.core.logging import get_log_context, get_logger
from studio.app.exceptions import RateLimitConfigError
from studio.app.middleware.client_identity import get_client_identifier

# Re-export models
from studio.app.middleware.rate_limit.models import (
    AdmissionResult,
    RateLimitClass,
    RateLimitConfig,
    RateLimitExceeded,
    RateLimitStatus,
    TokenBucket,
)

# Re-export backends
from studio.app.middleware.rate_limit.backends import (
    BucketStore,
    InMemoryBucketStore,
    RedisBucketStore,
    create_bucket_store,
    validate_cost,
)
from studio.app.middleware.rate_limit.limits import (
    DEFAULT_RATE_LIMITS,
    build_rate_limits,
    resolve_rate_class,
)

logger = get_logger(__name__)

__all__ = [
    # Models
    "AdmissionResult",
    "RateLimitClass",
    "RateLimitConfig",
    "RateLimitExceeded",
    "RateLimitStatus",
    "TokenBucket",
    # Backends
    "BucketStore",
    "InMemoryBucketStore",
    "RedisBucketStore",
    "create_bucket_store",
    "validate_cost",
    # Limits
    "DEFAULT_RATE_LIMITS",
    "build_rate_limits",
    "resolve_rate_class",
    # Main class
    "RateLimiter",
    "now_ms",
]

T = TypeVar("T")


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class RateLimiter:
    """Admission control facade over a bucket store.

    Admission decisions are returned as data, never raised. Configuration
    problems (unknown class, bad cost) are raised when a handler is
    wrapped, before any traffic flows.
    """

    def __init__(
        self,
        store: Optional[BucketStore] = None,
        limits: Mapping[RateLimitClass, RateLimitConfig] = DEFAULT_RATE_LIMITS,
        clock: Callable[[], int] = now_ms,
        identifier_resolver: Callable[[], str] = get_client_identifier,
        precise_retry_after: bool = False,
    ):
        """Initialize the rate limiter.

        Args:
            store: Bucket store; a fresh in-memory store if not given
            limits: Static configuration per rate limit class
            clock: Returns the current time in milliseconds
            identifier_resolver: Returns the caller's identifier for wrapped handlers
            precise_retry_after: Report the time until the next refill on denial
                instead of the full refill interval
        """
        self.store = store if store is not None else InMemoryBucketStore()
        self.limits = limits
        self._clock = clock
        self._identifier_resolver = identifier_resolver
        self._precise_retry_after = precise_retry_after

    def get_config(self, rate_class: Union[str, RateLimitClass]) -> RateLimitConfig:
        """Look up the configuration of a rate limit class.

        Raises:
            RateLimitConfigError: If the class is unknown or has no configuration
        """
        rate_class = resolve_rate_class(rate_class)
        try:
            return self.limits[rate_class]
        except KeyError:
            raise RateLimitConfigError(
                f"No rate limit configured for '{rate_class.value}'"
            ) from None

    def _retry_after_ms(self, bucket: TokenBucket, config: RateLimitConfig, now: int) -> int:
        if not self._precise_retry_after:
            return config.refill_interval_ms
        return max(1, bucket.last_refill + config.refill_interval_ms - now)

    async def check_rate_limit(
        self,
        identifier: str,
        rate_class: Union[str, RateLimitClass],
        cost: int = 1,
    ) -> AdmissionResult:
        """Check whether a request is allowed, spending cost tokens if it is.

        Args:
            identifier: Opaque client identifier
            rate_class: Rate limit class of the operation
            cost: Tokens the operation spends

        Returns:
            AdmissionResult; retry_after_ms is set when denied

        Raises:
            RateLimitConfigError: If the class is unknown or cost is not a positive integer
        """
        rate_class = resolve_rate_class(rate_class)
        config = self.get_config(rate_class)
        validate_cost(cost)
        now = self._clock()

        admitted, bucket = await self.store.check_and_consume(
            identifier, rate_class, config, cost, now
        )
        if admitted:
            return AdmissionResult(
                allowed=True,
                tokens_remaining=bucket.tokens,
                limit=config.max_tokens,
            )

        return AdmissionResult(
            allowed=False,
            tokens_remaining=bucket.tokens,
            limit=config.max_tokens,
            retry_after_ms=self._retry_after_ms(bucket, config, now),
        )

    async def get_rate_limit_status(
        self,
        identifier: str,
        rate_class: Union[str, RateLimitClass],
    ) -> RateLimitStatus:
        """Get the current bucket level without spending tokens.

        For display only; never use this to decide admission.
        """
        rate_class = resolve_rate_class(rate_class)
        config = self.get_config(rate_class)
        bucket = await self.store.peek(identifier, rate_class, config, self._clock())
        return RateLimitStatus(tokens_remaining=bucket.tokens, max_tokens=config.max_tokens)

    async def reset_rate_limit(self, identifier: str) -> None:
        """Forget every bucket of one identifier (tests and operations only)."""
        await self.store.reset(identifier, self.limits.keys())

    async def clear_all_rate_limits(self) -> None:
        """Forget every bucket (tests and operations only)."""
        await self.store.reset_all()

    async def cleanup(self) -> int:
        """Drop idle buckets that would be full by now anyway."""
        return await self.store.cleanup(self.limits, self._clock())

    def with_rate_limit(
        self,
        rate_class: Union[str, RateLimitClass],
        cost: int = 1,
    ) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[Union[T, RateLimitExceeded]]]]:
        """Decorator factory gating an async handler behind a rate limit class.

        A denied call returns RateLimitExceeded without invoking the
        handler. An admitted call awaits the handler once with the
        original arguments; its result or exception passes through as is.

        Raises:
            RateLimitConfigError: If the class is unknown or cost < 1
        """
        rate_class = resolve_rate_class(rate_class)
        config = self.get_config(rate_class)
        validate_cost(cost)
        if cost > config.max_tokens:
            logger.warning(
                f"Rate limit cost {cost} exceeds capacity {config.max_tokens} of "
                f"'{rate_class.value}'; every call will be denied",
                extra=get_log_context(rate_class=rate_class.value),
            )

        def decorator(
            handler: Callable[..., Awaitable[T]],
        ) -> Callable[..., Awaitable[Union[T, RateLimitExceeded]]]:
            @functools.wraps(handler)
            async def wrapper(*args, **kwargs) -> Union[T, RateLimitExceeded]:
                identifier = self._identifier_resolver()
                result = await self.check_rate_limit(identifier, rate_class, cost)

                if not result.allowed:
                    logger.info(
                        f"Rate limit exceeded for {handler.__name__}",
                        extra=get_log_context(
                            client_id=identifier,
                            rate_class=rate_class.value,
                            retry_after_ms=result.retry_after_ms,
                        ),
                    )
                    return RateLimitExceeded.from_admission(result)

                return await handler(*args, **kwargs)

            wrapper.rate_class = rate_class
            wrapper.cost = cost
            return wrapper

        return decorator
