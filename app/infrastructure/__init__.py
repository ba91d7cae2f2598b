"""Infrastructure modules for the notification delivery service.

Centralized infrastructure components:
- configuration: Settings management (Settings, DeliverySettings)
- logging: Structured logging (get_module_logger, configure_logging)
- operations: Operation results and provider error classification
- resilience: Circuit breakers, breaker registry and token bucket rate limiting
- events: In-process event publisher for lifecycle events
- notifications: Notification models, store, providers and the delivery engine
- services: Dependency injection services (SettingsDep, DeliveryEngineDep)
"""

# Observability
from infrastructure.logging import get_module_logger

# Operations
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    "get_module_logger",
    "OperationResult",
    "OperationStatus",
]
