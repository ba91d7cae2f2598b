"""SMTP email provider settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class SmtpSettings(IntegrationSettings):
    """SMTP relay configuration for the email channel.

    Environment Variables:
        SMTP_HOST: SMTP relay host name
        SMTP_PORT: SMTP relay port (default: 587)
        SMTP_USERNAME: Login user name, omitted for unauthenticated relays
        SMTP_PASSWORD: Login password
        SMTP_FROM_EMAIL: Envelope and header sender address
        SMTP_USE_TLS: Upgrade the connection with STARTTLS (default: True)

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        host = settings.smtp.SMTP_HOST
        sender = settings.smtp.SMTP_FROM_EMAIL
        ```
    """

    SMTP_HOST: str = Field(default="", alias="SMTP_HOST")
    SMTP_PORT: int = Field(default=587, alias="SMTP_PORT")
    SMTP_USERNAME: str | None = Field(default=None, alias="SMTP_USERNAME")
    SMTP_PASSWORD: str | None = Field(default=None, alias="SMTP_PASSWORD")
    SMTP_FROM_EMAIL: str = Field(default="", alias="SMTP_FROM_EMAIL")
    SMTP_USE_TLS: bool = Field(default=True, alias="SMTP_USE_TLS")

    @property
    def is_configured(self) -> bool:
        return bool(self.SMTP_HOST and self.SMTP_FROM_EMAIL)
