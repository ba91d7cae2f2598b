"""Token bucket rate limiter keyed by arbitrary strings.

Each key (``"<tenant_id>:<channel>"`` for notification delivery) owns a
bucket holding at most ``burst`` tokens, refilled continuously at ``rate``
tokens per second. Refill is computed lazily from the elapsed time whenever
the key is checked. An admitted request consumes one token; a denied
request consumes nothing.

Buckets are created on first use from the budget of the key's category
(the delivery channel) or the default budget. Buckets that have refilled
to capacity carry no state beyond their budget and can be evicted by
``cleanup_idle`` without any observable effect.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from infrastructure.logging import get_module_logger

logger = get_module_logger()


@dataclass(frozen=True)
class RateLimit:
    """Budget for one bucket: ``rate`` tokens per second, ``burst`` capacity."""

    rate: float
    burst: int

    def __post_init__(self):
        if self.rate <= 0:
            raise ValueError("rate must be positive")
        if self.burst < 1:
            raise ValueError("burst must be at least 1")


@dataclass
class TokenBucket:
    """Mutable bucket state. Not thread-safe on its own."""

    capacity: float
    rate: float
    tokens: float
    last_refill: float
    category: Optional[str] = None

    def refill(self, now: float) -> None:
        elapsed = max(0.0, now - self.last_refill)
        self.tokens = min(self.capacity, self.tokens + elapsed * self.rate)
        self.last_refill = now

    def try_consume(self, now: float) -> bool:
        self.refill(now)
        if self.tokens >= 1:
            self.tokens -= 1
            return True
        return False

    @property
    def is_full(self) -> bool:
        return self.tokens >= self.capacity


@dataclass
class _CategoryStats:
    allowed: int = 0
    denied: int = 0


class RateLimiter:
    """Per-key token bucket limiter.

    Args:
        default_limit: Budget for keys whose category has no dedicated budget
        category_limits: Budgets keyed by category (channel name)
        clock: Monotonic time source in seconds

    Example:
        limiter = RateLimiter(
            RateLimit(rate=10, burst=20),
            {"sms": RateLimit(rate=5, burst=20)},
        )
        if not limiter.allow("tenant-1:sms", category="sms"):
            ...
    """

    def __init__(
        self,
        default_limit: RateLimit,
        category_limits: Optional[Dict[str, RateLimit]] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.default_limit = default_limit
        self.category_limits: Dict[str, RateLimit] = dict(category_limits or {})
        self._clock = clock or time.monotonic
        self._buckets: Dict[str, TokenBucket] = {}
        self._stats: Dict[str, _CategoryStats] = {}
        self._lock = threading.Lock()

    def limit_for(self, category: Optional[str]) -> RateLimit:
        if category is None:
            return self.default_limit
        return self.category_limits.get(category, self.default_limit)

    def allow(self, key: str, category: Optional[str] = None) -> bool:
        """Consume one token for ``key`` if one is available.

        Args:
            key: Bucket key, e.g. ``"tenant-1:email"``
            category: Budget category used when the bucket is created

        Returns:
            True if the request is admitted, False if it is throttled
        """
        with self._lock:
            now = self._clock()
            bucket = self._buckets.get(key)
            if bucket is None:
                limit = self.limit_for(category)
                bucket = TokenBucket(
                    capacity=float(limit.burst),
                    rate=limit.rate,
                    tokens=float(limit.burst),
                    last_refill=now,
                    category=category,
                )
                self._buckets[key] = bucket

            allowed = bucket.try_consume(now)

            stats = self._stats.setdefault(category or "default", _CategoryStats())
            if allowed:
                stats.allowed += 1
            else:
                stats.denied += 1

        if not allowed:
            logger.debug("rate_limit_denied", key=key, category=category)
        return allowed

    def cleanup_idle(self) -> int:
        """Evict buckets that have refilled to capacity.

        Returns:
            Number of evicted buckets
        """
        with self._lock:
            now = self._clock()
            idle = []
            for key, bucket in self._buckets.items():
                bucket.refill(now)
                if bucket.is_full:
                    idle.append(key)
            for key in idle:
                del self._buckets[key]
            remaining = len(self._buckets)

        logger.info("rate_limiter_cleanup", evicted=len(idle), remaining=remaining)
        return len(idle)

    def reset(self, key: str) -> bool:
        """Drop the bucket for ``key``. Returns False if it did not exist."""
        with self._lock:
            return self._buckets.pop(key, None) is not None

    def get_stats(self) -> dict:
        """Bucket count and admitted/denied totals per category."""
        with self._lock:
            return {
                "buckets": len(self._buckets),
                "categories": {
                    name: {"allowed": s.allowed, "denied": s.denied}
                    for name, s in self._stats.items()
                },
                "limits": {
                    "default": {
                        "rate": self.default_limit.rate,
                        "burst": self.default_limit.burst,
                    },
                    **{
                        name: {"rate": limit.rate, "burst": limit.burst}
                        for name, limit in self.category_limits.items()
                    },
                },
            }
