"""Infrastructure configuration module - public API.

This module provides centralized configuration management for the
notification delivery service using Pydantic BaseSettings with
domain-based organization.

Exports:
    Settings: Main settings class (aggregator, also used for overrides in tests)
    DeliverySettings: Delivery engine and sweep settings
    CircuitBreakerSettings: Breaker defaults and per-provider overrides
    RateLimitSettings: Per-channel token bucket budgets
    ProviderTimeoutSettings: Per-channel provider call timeouts

Example:
    ```python
    from infrastructure.services import get_settings

    settings = get_settings()

    retries = settings.delivery.max_retries
    breaker_timeout = settings.circuit_breaker.timeout_seconds

    # Check environment
    if settings.is_production:
        # Production-specific logic...
    ```
"""

from infrastructure.configuration.settings import Settings
from infrastructure.configuration.infrastructure import (
    CircuitBreakerSettings,
    DeliverySettings,
    ProviderTimeoutSettings,
    RateLimitSettings,
    ServerSettings,
)

__all__ = [
    "Settings",
    "DeliverySettings",
    "CircuitBreakerSettings",
    "RateLimitSettings",
    "ProviderTimeoutSettings",
    "ServerSettings",
]
