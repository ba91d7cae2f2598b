"""Resilience patterns for provider calls.

Circuit breakers (one per provider, owned by a BreakerRegistry) and the
per-key token bucket RateLimiter.
"""

from infrastructure.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerOpenError,
    CircuitState,
    Counts,
    TooManyRequestsError,
)
from infrastructure.resilience.rate_limiter import (
    RateLimit,
    RateLimiter,
    TokenBucket,
)
from infrastructure.resilience.registry import BreakerConfig, BreakerRegistry

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerOpenError",
    "CircuitState",
    "Counts",
    "TooManyRequestsError",
    "BreakerConfig",
    "BreakerRegistry",
    "RateLimit",
    "RateLimiter",
    "TokenBucket",
]
