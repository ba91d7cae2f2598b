"""Circuit breaker, rate limit and provider timeout settings."""

from typing import Dict

from pydantic import Field, field_validator

from infrastructure.configuration.base import InfrastructureSettings


class CircuitBreakerSettings(InfrastructureSettings):
    """Per-provider circuit breaker configuration.

    Environment Variables:
        CIRCUIT_BREAKER_MAX_REQUESTS: Probes admitted while half-open (default: 5)
        CIRCUIT_BREAKER_INTERVAL_SECONDS: Closed-state counting window, 0 never clears (default: 60)
        CIRCUIT_BREAKER_TIMEOUT_SECONDS: Open-state cool-down (default: 30)
        CIRCUIT_BREAKER_FAILURE_THRESHOLD: Trip once consecutive failures exceed this (default: 5)
        CIRCUIT_BREAKER_OVERRIDES: JSON object of per-provider overrides, e.g.
            {"twilio": {"timeout_seconds": 120, "failure_threshold": 3}}

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()
        twilio = settings.circuit_breaker.for_provider("twilio")
        ```
    """

    max_requests: int = Field(
        default=5,
        alias="CIRCUIT_BREAKER_MAX_REQUESTS",
        description="Maximum probe requests admitted in the half-open state",
    )
    interval_seconds: float = Field(
        default=60,
        alias="CIRCUIT_BREAKER_INTERVAL_SECONDS",
        description="Closed-state window after which counts are cleared",
    )
    timeout_seconds: float = Field(
        default=30,
        alias="CIRCUIT_BREAKER_TIMEOUT_SECONDS",
        description="Seconds an open breaker waits before admitting probes",
    )
    failure_threshold: int = Field(
        default=5,
        alias="CIRCUIT_BREAKER_FAILURE_THRESHOLD",
        description="Breaker opens when consecutive failures exceed this value",
    )
    overrides: Dict[str, Dict[str, float]] = Field(
        default_factory=dict,
        alias="CIRCUIT_BREAKER_OVERRIDES",
        description="Per-provider overrides keyed by provider name",
    )

    @field_validator("overrides", mode="before")
    @classmethod
    def validate_overrides(cls, v):
        """Treat an unset or malformed override map as empty."""
        if v is None or not isinstance(v, dict):
            return {}
        return v

    def for_provider(self, provider: str) -> Dict[str, float]:
        """Return the effective breaker options for a provider."""
        options: Dict[str, float] = {
            "max_requests": self.max_requests,
            "interval_seconds": self.interval_seconds,
            "timeout_seconds": self.timeout_seconds,
            "failure_threshold": self.failure_threshold,
        }
        options.update(self.overrides.get(provider, {}))
        return options


class RateLimitSettings(InfrastructureSettings):
    """Token bucket budgets per delivery channel.

    Each tenant gets one bucket per channel, refilled at ``*_RATE`` tokens
    per second up to ``*_BURST`` tokens.

    Environment Variables:
        RATE_LIMIT_EMAIL_RATE / RATE_LIMIT_EMAIL_BURST: default 10 / 50
        RATE_LIMIT_SMS_RATE / RATE_LIMIT_SMS_BURST: default 5 / 20
        RATE_LIMIT_PUSH_RATE / RATE_LIMIT_PUSH_BURST: default 50 / 200
        RATE_LIMIT_WEBHOOK_RATE / RATE_LIMIT_WEBHOOK_BURST: default 20 / 100
        RATE_LIMIT_DEFAULT_RATE / RATE_LIMIT_DEFAULT_BURST: default 10 / 20
            (in-app and any channel without a dedicated budget)
    """

    email_rate: float = Field(default=10, alias="RATE_LIMIT_EMAIL_RATE")
    email_burst: int = Field(default=50, alias="RATE_LIMIT_EMAIL_BURST")
    sms_rate: float = Field(default=5, alias="RATE_LIMIT_SMS_RATE")
    sms_burst: int = Field(default=20, alias="RATE_LIMIT_SMS_BURST")
    push_rate: float = Field(default=50, alias="RATE_LIMIT_PUSH_RATE")
    push_burst: int = Field(default=200, alias="RATE_LIMIT_PUSH_BURST")
    webhook_rate: float = Field(default=20, alias="RATE_LIMIT_WEBHOOK_RATE")
    webhook_burst: int = Field(default=100, alias="RATE_LIMIT_WEBHOOK_BURST")
    default_rate: float = Field(default=10, alias="RATE_LIMIT_DEFAULT_RATE")
    default_burst: int = Field(default=20, alias="RATE_LIMIT_DEFAULT_BURST")

    def channel_budgets(self) -> Dict[str, tuple[float, int]]:
        """Return (rate, burst) pairs keyed by channel name."""
        return {
            "email": (self.email_rate, self.email_burst),
            "sms": (self.sms_rate, self.sms_burst),
            "push": (self.push_rate, self.push_burst),
            "webhook": (self.webhook_rate, self.webhook_burst),
        }


class ProviderTimeoutSettings(InfrastructureSettings):
    """Per-channel provider call timeouts in seconds.

    A provider call that does not complete within its channel timeout is
    abandoned and recorded as a transient failure.
    """

    email: float = Field(default=30, alias="PROVIDER_TIMEOUT_EMAIL")
    sms: float = Field(default=10, alias="PROVIDER_TIMEOUT_SMS")
    push: float = Field(default=30, alias="PROVIDER_TIMEOUT_PUSH")
    webhook: float = Field(default=10, alias="PROVIDER_TIMEOUT_WEBHOOK")
    in_app: float = Field(default=5, alias="PROVIDER_TIMEOUT_IN_APP")

    def for_channel(self, channel: str) -> float:
        return float(getattr(self, channel, self.email))
