"""Firebase Cloud Messaging push provider settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class FcmSettings(IntegrationSettings):
    """FCM HTTP API configuration for the push channel.

    Environment Variables:
        FCM_SERVER_KEY: Legacy server key used in the Authorization header
        FCM_API_URL: Send endpoint (default: https://fcm.googleapis.com/fcm/send)
    """

    FCM_SERVER_KEY: str | None = Field(default=None, alias="FCM_SERVER_KEY")
    FCM_API_URL: str = Field(
        default="https://fcm.googleapis.com/fcm/send", alias="FCM_API_URL"
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.FCM_SERVER_KEY)
