"""Notification provider abstract base class.

A provider is the capability that puts a message on the wire for exactly
one channel. The delivery engine wraps every ``send`` in the provider's
circuit breaker and the channel timeout, so providers stay free of
resilience logic.
"""

from abc import ABC, abstractmethod
from typing import Dict

from infrastructure.notifications.models import NotificationChannel
from infrastructure.operations import OperationResult


class NotificationProvider(ABC):
    """Abstract base class for channel providers.

    Providers must not raise for delivery failures. They return an
    OperationResult whose status tells the engine whether a retry could
    help (TRANSIENT_ERROR) or not (PERMANENT_ERROR).

    Example Implementation:
        class LogProvider(NotificationProvider):

            @property
            def channel(self) -> NotificationChannel:
                return NotificationChannel.IN_APP

            @property
            def provider_name(self) -> str:
                return "log"

            def send(self, recipient, subject, body, metadata, timeout):
                logger.info("notification_logged", recipient=recipient)
                return OperationResult.success()

            def health_check(self):
                return OperationResult.success()
    """

    @property
    @abstractmethod
    def channel(self) -> NotificationChannel:
        """Channel served by this provider."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier, also the circuit breaker name."""

    @abstractmethod
    def send(
        self,
        recipient: str,
        subject: str,
        body: str,
        metadata: Dict[str, str],
        timeout: float,
    ) -> OperationResult:
        """Deliver one message.

        Args:
            recipient: Channel-specific address (email, phone, device token, URL, user id)
            subject: Subject or title, may be empty
            body: Message body
            metadata: Free-form string pairs, some keys are provider options
            timeout: Seconds the transport may spend on the call

        Returns:
            OperationResult with the provider message id in ``data`` on success
        """

    @abstractmethod
    def health_check(self) -> OperationResult:
        """Check provider configuration and reachability."""
