"""
Factory functions for dependency injection.

Provides application-scoped singleton providers for core infrastructure services.
"""

from functools import lru_cache

from infrastructure.configuration import Settings
from infrastructure.notifications import DeliveryEngine, create_delivery_engine


@lru_cache
def get_settings() -> Settings:
    """
    Get application-scoped settings singleton.

    The @lru_cache decorator ensures only ONE instance is created per process.

    Application code should use the DI type alias for testability:
        from infrastructure.services import SettingsDep
        @router.get("/config")
        def get_config(settings: SettingsDep):
            return settings.delivery.model_dump()

    Returns:
        Settings: Cached settings instance loaded from environment.
    """
    return Settings()


@lru_cache
def get_delivery_engine() -> DeliveryEngine:
    """
    Get application-scoped delivery engine singleton.

    The engine owns the worker pool, the circuit breaker registry and the
    rate limiter, so exactly one must exist per process.

    Usage:
        @router.get("/stats")
        def stats(engine: DeliveryEngineDep):
            return engine.get_stats()

    Returns:
        DeliveryEngine: Cached engine wired from application settings.
    """
    return create_delivery_engine(get_settings())
