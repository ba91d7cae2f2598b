"""Notification delivery error taxonomy.

Validation errors are raised synchronously to the submitter. Every other
error is raised inside an asynchronous delivery attempt, recorded on the
notification and never propagated to the process.
"""

from typing import Optional


class NotificationError(Exception):
    """Base class for notification delivery errors."""


class NotificationValidationError(NotificationError):
    """Submitted notification is malformed. Never retried."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class NotificationNotFoundError(NotificationError):
    def __init__(self, notification_id: str):
        self.notification_id = notification_id
        super().__init__(f"notification '{notification_id}' not found")


class InvalidStateTransitionError(NotificationError):
    """Requested lifecycle transition is not allowed from the current status."""

    def __init__(self, notification_id: str, current: str, target: str):
        self.notification_id = notification_id
        self.current = current
        self.target = target
        super().__init__(
            f"notification '{notification_id}' cannot move from {current} to {target}"
        )


class RateLimitExceededError(NotificationError):
    """Tenant exceeded its channel budget. Transient."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"rate limit exceeded for '{key}'")


class ProviderError(NotificationError):
    """Provider reported a delivery failure.

    Attributes:
        provider: Provider name
        permanent: True when retrying cannot succeed
        error_code: Optional machine error code from the provider result
    """

    def __init__(
        self,
        provider: str,
        message: str,
        permanent: bool = False,
        error_code: Optional[str] = None,
    ):
        self.provider = provider
        self.permanent = permanent
        self.error_code = error_code
        super().__init__(message)


class DeliveryTimeoutError(ProviderError):
    """Provider call did not finish within the channel timeout. Transient."""

    def __init__(self, provider: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            provider,
            f"{provider} call timed out after {timeout:g}s",
            permanent=False,
            error_code="TIMEOUT",
        )


class PersistenceError(NotificationError):
    """Notification store failed to read or write."""
