"""Unit tests for application settings."""

import pytest

from infrastructure.configuration import (
    CircuitBreakerSettings,
    DeliverySettings,
    ProviderTimeoutSettings,
    RateLimitSettings,
    Settings,
)
from infrastructure.configuration.integrations import SmtpSettings, TwilioSettings


@pytest.mark.unit
class TestDeliverySettings:
    def test_defaults(self, monkeypatch):
        for name in ("DELIVERY_MAX_RETRIES", "DELIVERY_MAX_WORKERS"):
            monkeypatch.delenv(name, raising=False)
        settings = DeliverySettings()
        assert settings.max_retries == 3
        assert settings.max_workers == 10
        assert settings.retry_base_delay_seconds == 0

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("DELIVERY_MAX_RETRIES", "7")
        monkeypatch.setenv("DELIVERY_SWEEPS_ENABLED", "false")
        settings = DeliverySettings()
        assert settings.max_retries == 7
        assert settings.sweeps_enabled is False

    def test_accepts_field_names(self):
        assert DeliverySettings(max_retries=1).max_retries == 1


@pytest.mark.unit
class TestCircuitBreakerSettings:
    def test_for_provider_defaults(self):
        options = CircuitBreakerSettings().for_provider("smtp")
        assert options["failure_threshold"] == 5
        assert options["timeout_seconds"] == 30

    def test_overrides_from_json_env(self, monkeypatch):
        monkeypatch.setenv(
            "CIRCUIT_BREAKER_OVERRIDES", '{"twilio": {"timeout_seconds": 120}}'
        )
        settings = CircuitBreakerSettings()
        assert settings.for_provider("twilio")["timeout_seconds"] == 120
        assert settings.for_provider("fcm")["timeout_seconds"] == 30


@pytest.mark.unit
class TestRateLimitSettings:
    def test_channel_budgets(self):
        budgets = RateLimitSettings().channel_budgets()
        assert budgets["email"] == (10, 50)
        assert budgets["sms"] == (5, 20)
        assert "in_app" not in budgets


@pytest.mark.unit
class TestProviderTimeoutSettings:
    def test_for_channel(self):
        timeouts = ProviderTimeoutSettings()
        assert timeouts.for_channel("sms") == 10
        assert timeouts.for_channel("in_app") == 5


@pytest.mark.unit
class TestIntegrationSettings:
    def test_smtp_is_configured(self):
        assert SmtpSettings(
            SMTP_HOST="smtp.example.com", SMTP_FROM_EMAIL="a@example.com"
        ).is_configured
        assert not SmtpSettings(SMTP_HOST="", SMTP_FROM_EMAIL="").is_configured

    def test_twilio_requires_credentials(self):
        assert not TwilioSettings(
            TWILIO_ACCOUNT_SID="", TWILIO_AUTH_TOKEN=None
        ).is_configured


@pytest.mark.unit
class TestSettings:
    def test_builds_all_sections(self):
        settings = Settings()
        assert isinstance(settings.delivery, DeliverySettings)
        assert isinstance(settings.rate_limits, RateLimitSettings)
        assert isinstance(settings.timeouts, ProviderTimeoutSettings)

    def test_section_override(self):
        settings = Settings(delivery=DeliverySettings(max_retries=9))
        assert settings.delivery.max_retries == 9

    def test_is_production_follows_prefix(self):
        assert Settings(PREFIX="").is_production
        assert not Settings(PREFIX="dev-").is_production
