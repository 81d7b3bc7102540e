"""Bucket store backends for the token bucket rate limiter.

The in-memory store serves single-instance deployments. The Redis store
keeps the same semantics for deployments with several instances that must
share one view of each client's quota.
"""

import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

import redis
import redis.asyncio as aioredis

from studio.app.core.config import Settings
from studio.app.core.logging import get_logger
from studio.app.exceptions import RateLimitConfigError
from studio.app.middleware.rate_limit.models import (
    RateLimitClass,
    RateLimitConfig,
    TokenBucket,
)
from studio.app.middleware.rate_limit.redis_lua import CHECK_AND_CONSUME_SCRIPT

logger = get_logger(__name__)

BucketKey = Tuple[RateLimitClass, str]


def refill_bucket(bucket: TokenBucket, config: RateLimitConfig, now: int) -> None:
    """Catch the bucket up with the wall-clock time elapsed since its last refill.

    Only whole intervals count. A bucket untouched for any length of time
    ends up at the right level, capped at capacity.
    """
    intervals_elapsed = (now - bucket.last_refill) // config.refill_interval_ms
    if intervals_elapsed > 0:
        bucket.tokens = min(
            config.max_tokens,
            bucket.tokens + intervals_elapsed * config.refill_rate,
        )
        bucket.last_refill = now


def validate_cost(cost: int) -> int:
    """Reject anything but a positive integer token cost.

    Raises:
        RateLimitConfigError: If cost is a bool, not an int, or below 1
    """
    if isinstance(cost, bool) or not isinstance(cost, int) or cost < 1:
        raise RateLimitConfigError(f"Rate limit cost must be a positive integer, got {cost!r}")
    return cost


def consume_tokens(bucket: TokenBucket, cost: int) -> bool:
    """Debit cost tokens if the bucket holds enough. A failed debit changes nothing."""
    validate_cost(cost)
    if bucket.tokens >= cost:
        bucket.tokens -= cost
        return True
    return False


class BucketStore(ABC):
    """Abstract base class for bucket stores.

    Implementations own every bucket they hold; callers only see snapshots.
    """

    @abstractmethod
    async def check_and_consume(
        self,
        identifier: str,
        rate_class: RateLimitClass,
        config: RateLimitConfig,
        cost: int,
        now: int,
    ) -> Tuple[bool, TokenBucket]:
        """Refill then try to debit, atomically for this (identifier, class) pair.

        Returns:
            Tuple of (admitted, snapshot of the bucket after the operation)
        """

    @abstractmethod
    async def peek(
        self,
        identifier: str,
        rate_class: RateLimitClass,
        config: RateLimitConfig,
        now: int,
    ) -> TokenBucket:
        """Refill without debiting and return a snapshot of the bucket."""

    @abstractmethod
    async def reset(self, identifier: str, rate_classes: Iterable[RateLimitClass]) -> None:
        """Delete the identifier's buckets for the given classes."""

    @abstractmethod
    async def reset_all(self) -> None:
        """Delete every bucket."""

    async def cleanup(self, limits: Mapping[RateLimitClass, RateLimitConfig], now: int) -> int:
        """Drop buckets that have been idle long enough to be full again.

        Returns:
            Number of buckets removed
        """
        return 0

    async def close(self) -> None:
        """Release backend resources."""


class InMemoryBucketStore(BucketStore):
    """Process-local bucket store.

    A single lock guards the whole map. Critical sections never await.
    Restarting the process clears every bucket.
    """

    def __init__(self):
        self._buckets: Dict[BucketKey, TokenBucket] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._buckets)

    def get_or_create(
        self,
        identifier: str,
        rate_class: RateLimitClass,
        config: RateLimitConfig,
        now: int,
    ) -> TokenBucket:
        """Return the pair's bucket, creating a full one on first access."""
        key = (rate_class, identifier)
        with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = TokenBucket(tokens=config.max_tokens, last_refill=now)
                self._buckets[key] = bucket
            return bucket

    def refill(self, bucket: TokenBucket, config: RateLimitConfig, now: int) -> None:
        with self._lock:
            refill_bucket(bucket, config, now)

    def consume(self, bucket: TokenBucket, cost: int) -> bool:
        with self._lock:
            return consume_tokens(bucket, cost)

    async def check_and_consume(
        self,
        identifier: str,
        rate_class: RateLimitClass,
        config: RateLimitConfig,
        cost: int,
        now: int,
    ) -> Tuple[bool, TokenBucket]:
        validate_cost(cost)
        with self._lock:
            bucket = self.get_or_create(identifier, rate_class, config, now)
            self.refill(bucket, config, now)
            admitted = self.consume(bucket, cost)
            return admitted, TokenBucket(tokens=bucket.tokens, last_refill=bucket.last_refill)

    async def peek(
        self,
        identifier: str,
        rate_class: RateLimitClass,
        config: RateLimitConfig,
        now: int,
    ) -> TokenBucket:
        with self._lock:
            bucket = self.get_or_create(identifier, rate_class, config, now)
            self.refill(bucket, config, now)
            return TokenBucket(tokens=bucket.tokens, last_refill=bucket.last_refill)

    async def reset(self, identifier: str, rate_classes: Iterable[RateLimitClass]) -> None:
        with self._lock:
            for rate_class in rate_classes:
                self._buckets.pop((rate_class, identifier), None)

    async def reset_all(self) -> None:
        with self._lock:
            self._buckets.clear()

    async def cleanup(self, limits: Mapping[RateLimitClass, RateLimitConfig], now: int) -> int:
        with self._lock:
            stale = [
                key for key, bucket in self._buckets.items()
                if key[0] in limits
                and now - bucket.last_refill >= limits[key[0]].full_refill_ms
            ]
            for key in stale:
                del self._buckets[key]
        if stale:
            logger.debug(f"Removed {len(stale)} idle rate limit buckets")
        return len(stale)


class RedisBucketStore(BucketStore):
    """Redis-backed bucket store shared by every instance.

    Each bucket is a hash; refill and debit run inside one Lua script
    (see redis_lua.py). When Redis is unreachable the configured
    fail-open/fail-closed policy decides the outcome.
    """

    def __init__(
        self,
        redis_client: Optional[Any] = None,
        redis_url: str = "redis://localhost:6379/0",
        key_prefix: str = "studio:ratelimit",
        fail_closed: bool = False,
    ):
        """Initialize Redis bucket store.

        Args:
            redis_client: Optional Redis client instance
            redis_url: Redis connection URL, used when no client is given
            key_prefix: Prefix for every bucket key
            fail_closed: Deny instead of allow when Redis errors
        """
        self._redis = redis_client if redis_client is not None else aioredis.from_url(redis_url)
        self._key_prefix = key_prefix
        self._fail_closed = fail_closed

    def _make_key(self, identifier: str, rate_class: RateLimitClass) -> str:
        return f"{self._key_prefix}:{rate_class.value}:{identifier}"

    async def _run_script(
        self,
        identifier: str,
        rate_class: RateLimitClass,
        config: RateLimitConfig,
        cost: int,
        now: int,
    ) -> Tuple[bool, TokenBucket]:
        allowed, tokens, last_refill = await self._redis.eval(
            CHECK_AND_CONSUME_SCRIPT,
            1,
            self._make_key(identifier, rate_class),
            config.max_tokens,
            config.refill_rate,
            config.refill_interval_ms,
            cost,
            now,
            config.full_refill_ms,
        )
        return bool(int(allowed)), TokenBucket(tokens=int(tokens), last_refill=int(last_refill))

    async def check_and_consume(
        self,
        identifier: str,
        rate_class: RateLimitClass,
        config: RateLimitConfig,
        cost: int,
        now: int,
    ) -> Tuple[bool, TokenBucket]:
        validate_cost(cost)
        try:
            return await self._run_script(identifier, rate_class, config, cost, now)
        except redis.ConnectionError as e:
            logger.error(f"Redis connection failed: {e}")
            return self._handle_redis_failure("connection_error", config, cost, now)
        except redis.TimeoutError as e:
            logger.warning(f"Redis timeout: {e}")
            return self._handle_redis_failure("timeout", config, cost, now)
        except redis.RedisError as e:
            logger.error(f"Redis error: {e}")
            return self._handle_redis_failure("redis_error", config, cost, now)

    def _handle_redis_failure(
        self,
        error_type: str,
        config: RateLimitConfig,
        cost: int,
        now: int,
    ) -> Tuple[bool, TokenBucket]:
        """Decide an admission without Redis, per the fail-open/fail-closed policy."""
        if self._fail_closed:
            logger.warning(
                f"Rate limiting fail-closed triggered due to {error_type}. "
                "Request denied."
            )
            return False, TokenBucket(tokens=0, last_refill=now)

        logger.warning(
            f"Rate limiting fail-open triggered due to {error_type}. "
            "Request allowed without rate limit check."
        )
        admitted = cost <= config.max_tokens
        tokens = config.max_tokens - cost if admitted else config.max_tokens
        return admitted, TokenBucket(tokens=tokens, last_refill=now)

    async def peek(
        self,
        identifier: str,
        rate_class: RateLimitClass,
        config: RateLimitConfig,
        now: int,
    ) -> TokenBucket:
        try:
            _, bucket = await self._run_script(identifier, rate_class, config, 0, now)
            return bucket
        except redis.RedisError as e:
            logger.warning(f"Redis error reading rate limit status: {e}")
            return TokenBucket(tokens=config.max_tokens, last_refill=now)

    async def reset(self, identifier: str, rate_classes: Iterable[RateLimitClass]) -> None:
        keys = [self._make_key(identifier, rate_class) for rate_class in rate_classes]
        if keys:
            await self._redis.delete(*keys)

    async def reset_all(self) -> None:
        batch = []
        async for key in self._redis.scan_iter(match=f"{self._key_prefix}:*", count=500):
            batch.append(key)
            if len(batch) >= 500:
                await self._redis.delete(*batch)
                batch = []
        if batch:
            await self._redis.delete(*batch)

    async def close(self) -> None:
        await self._redis.aclose()


def create_bucket_store(settings: Settings) -> BucketStore:
    """Create the bucket store selected by settings.rate_limit_backend.

    Falls back to the in-memory store if the Redis client cannot be built.

    Raises:
        RateLimitConfigError: If the backend name is unknown
    """
    backend = settings.rate_limit_backend
    if backend == "memory":
        logger.debug("Using in-memory rate limit bucket store")
        return InMemoryBucketStore()
    if backend == "redis":
        try:
            store = RedisBucketStore(
                redis_url=settings.redis_url,
                key_prefix=settings.rate_limit_key_prefix,
                fail_closed=settings.rate_limit_fail_closed,
            )
            logger.info("Using Redis rate limit bucket store")
            return store
        except (ValueError, redis.RedisError) as e:
            logger.warning(f"Failed to initialize Redis bucket store: {e}. Using in-memory.")
            return InMemoryBucketStore()
    raise RateLimitConfigError(f"Unknown rate limit backend '{backend}'")
