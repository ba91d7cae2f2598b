"""Outbound webhook provider settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class WebhookSettings(IntegrationSettings):
    """Outbound webhook configuration.

    Environment Variables:
        WEBHOOK_SECRET_KEY: Shared secret used to sign payloads (HMAC-SHA256)
        WEBHOOK_USER_AGENT: User-Agent header sent with every delivery
    """

    WEBHOOK_SECRET_KEY: str | None = Field(default=None, alias="WEBHOOK_SECRET_KEY")
    WEBHOOK_USER_AGENT: str = Field(
        default="Notification-Delivery/1.0", alias="WEBHOOK_USER_AGENT"
    )
