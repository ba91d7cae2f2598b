"""Notification delivery configuration settings - main aggregator."""

from pydantic_settings import BaseSettings, SettingsConfigDict

# Provider integration settings
from infrastructure.configuration.integrations import (
    FcmSettings,
    SmtpSettings,
    TwilioSettings,
    WebhookSettings,
)

# Infrastructure settings
from infrastructure.configuration.infrastructure import (
    CircuitBreakerSettings,
    DeliverySettings,
    ProviderTimeoutSettings,
    RateLimitSettings,
    ServerSettings,
)


class Settings(BaseSettings):
    """Notification delivery configuration settings - main aggregator.

    Aggregates all domain-specific settings into a single configuration object.
    Settings are organized by concern:

    - **Integrations**: Provider configurations (SMTP, Twilio, FCM, webhooks)
    - **Infrastructure**: Delivery engine, circuit breakers, rate limits,
      provider timeouts and server

    Environment Variables:
        PREFIX: Environment prefix, empty in production
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        GIT_SHA: Git commit SHA for deployment tracking

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        # Access provider settings
        smtp_host = settings.smtp.SMTP_HOST

        # Access infrastructure settings
        max_retries = settings.delivery.max_retries
        email_budget = settings.rate_limits.channel_budgets()["email"]

        # Check environment
        if settings.is_production:
            # Production-specific logic...
        ```
    """

    # Application-level settings
    PREFIX: str = ""
    LOG_LEVEL: str = "INFO"
    GIT_SHA: str = "Unknown"

    # Integration settings
    smtp: SmtpSettings
    twilio: TwilioSettings
    fcm: FcmSettings
    webhook: WebhookSettings

    # Infrastructure settings
    server: ServerSettings
    delivery: DeliverySettings
    circuit_breaker: CircuitBreakerSettings
    rate_limits: RateLimitSettings
    timeouts: ProviderTimeoutSettings

    @property
    def is_production(self) -> bool:
        """Check if the application is running in production.

        Returns:
            True if PREFIX is empty (production), False otherwise.
        """
        return not bool(self.PREFIX)

    def __init__(self, **kwargs):
        """Initialize Settings with automatic subsettings instantiation.

        Args:
            **kwargs: Optional overrides for specific settings sections.
        """
        settings_map = {
            # Integrations
            "smtp": SmtpSettings,
            "twilio": TwilioSettings,
            "fcm": FcmSettings,
            "webhook": WebhookSettings,
            # Infrastructure
            "server": ServerSettings,
            "delivery": DeliverySettings,
            "circuit_breaker": CircuitBreakerSettings,
            "rate_limits": RateLimitSettings,
            "timeouts": ProviderTimeoutSettings,
        }

        for setting_name, setting_class in settings_map.items():
            if setting_name not in kwargs:
                kwargs[setting_name] = setting_class()

        super().__init__(**kwargs)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )
