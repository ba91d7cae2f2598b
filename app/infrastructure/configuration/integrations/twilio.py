"""Twilio SMS provider settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class TwilioSettings(IntegrationSettings):
    """Twilio REST API configuration for the SMS channel.

    Environment Variables:
        TWILIO_ACCOUNT_SID: Twilio account identifier
        TWILIO_AUTH_TOKEN: Twilio API auth token
        TWILIO_FROM_NUMBER: Sending phone number in E.164 format
        TWILIO_API_URL: API base URL (default: https://api.twilio.com/2010-04-01)
    """

    TWILIO_ACCOUNT_SID: str = Field(default="", alias="TWILIO_ACCOUNT_SID")
    TWILIO_AUTH_TOKEN: str | None = Field(default=None, alias="TWILIO_AUTH_TOKEN")
    TWILIO_FROM_NUMBER: str = Field(default="", alias="TWILIO_FROM_NUMBER")
    TWILIO_API_URL: str = Field(
        default="https://api.twilio.com/2010-04-01", alias="TWILIO_API_URL"
    )

    @property
    def is_configured(self) -> bool:
        return bool(
            self.TWILIO_ACCOUNT_SID and self.TWILIO_AUTH_TOKEN and self.TWILIO_FROM_NUMBER
        )
