"""Infrastructure settings __init__ - exports all infrastructure settings."""

from infrastructure.configuration.infrastructure.delivery import DeliverySettings
from infrastructure.configuration.infrastructure.resilience import (
    CircuitBreakerSettings,
    ProviderTimeoutSettings,
    RateLimitSettings,
)
from infrastructure.configuration.infrastructure.server import ServerSettings

__all__ = [
    "DeliverySettings",
    "CircuitBreakerSettings",
    "RateLimitSettings",
    "ProviderTimeoutSettings",
    "ServerSettings",
]
