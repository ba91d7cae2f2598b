"""In-app provider publishing messages on the event bus."""

from datetime import datetime, timezone
from typing import Dict

from infrastructure.events import EventPublisher
from infrastructure.logging import get_module_logger
from infrastructure.notifications.models import NotificationChannel
from infrastructure.notifications.providers.base import NotificationProvider
from infrastructure.operations import OperationResult

logger = get_module_logger()

IN_APP_TOPIC_PREFIX = "notification.in_app"


def in_app_topic(recipient: str) -> str:
    return f"{IN_APP_TOPIC_PREFIX}.{recipient}"


class InAppProvider(NotificationProvider):
    """Publishes the message to ``notification.in_app.<recipient>``.

    Connected clients (websocket gateways, mobile sync) subscribe to their
    user's topic.
    """

    def __init__(self, publisher: EventPublisher):
        self._publisher = publisher

    @property
    def channel(self) -> NotificationChannel:
        return NotificationChannel.IN_APP

    @property
    def provider_name(self) -> str:
        return "in_app"

    def send(
        self,
        recipient: str,
        subject: str,
        body: str,
        metadata: Dict[str, str],
        timeout: float,
    ) -> OperationResult:
        payload = {
            "recipient": recipient,
            "title": subject,
            "body": body,
            "metadata": dict(metadata),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        try:
            self._publisher.publish(in_app_topic(recipient), payload)
        except Exception as exc:
            return OperationResult.transient_error(
                f"in-app publish failed: {exc}", error_code="PUBLISH_FAILED"
            )
        return OperationResult.success(message="in-app message published")

    def health_check(self) -> OperationResult:
        return OperationResult.success(message="event publisher attached")
