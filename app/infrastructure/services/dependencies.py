"""
Type aliases for FastAPI dependency injection.

Provides annotated type hints for common infrastructure dependencies.
"""

from typing import Annotated

from fastapi import Depends

from infrastructure.configuration import Settings
from infrastructure.notifications import DeliveryEngine
from infrastructure.services.providers import get_delivery_engine, get_settings

# Settings dependency
SettingsDep = Annotated[Settings, Depends(get_settings)]

# Delivery engine dependency - submission, lifecycle, sweeps and resilience state
DeliveryEngineDep = Annotated[DeliveryEngine, Depends(get_delivery_engine)]

__all__ = [
    "SettingsDep",
    "DeliveryEngineDep",
]
