"""
Dependency injection services.

Provides type aliases and provider functions for FastAPI dependency injection.
"""

from infrastructure.services.dependencies import DeliveryEngineDep, SettingsDep
from infrastructure.services.providers import get_delivery_engine, get_settings

__all__ = [
    "SettingsDep",
    "DeliveryEngineDep",
    "get_settings",
    "get_delivery_engine",
]
