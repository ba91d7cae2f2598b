"""Unit tests for infrastructure.logging.formatters module."""

import pytest

from infrastructure.logging.formatters import (
    SENSITIVE_PATTERNS,
    add_app_info,
    add_environment_info,
    mask_sensitive_data,
    truncate_large_values,
)


@pytest.mark.unit
class TestAddAppInfo:
    def test_adds_name_and_version(self):
        processor = add_app_info("notification-delivery", "abc123")
        result = processor(None, "info", {"event": "notification_sent"})
        assert result["app_name"] == "notification-delivery"
        assert result["app_version"] == "abc123"
        assert result["event"] == "notification_sent"

    def test_unknown_version_default(self):
        result = add_app_info("app")(None, "info", {})
        assert result["app_version"] == "unknown"


@pytest.mark.unit
class TestMaskSensitiveData:
    def test_masks_provider_credentials(self):
        processor = mask_sensitive_data()
        result = processor(
            None,
            "info",
            {
                "event": "provider_configured",
                "smtp_password": "hunter2",
                "TWILIO_AUTH_TOKEN": "tok",
                "fcm_server_key": "key",
                "x_webhook_signature": "sha256=...",
                "recipient": "user@example.com",
            },
        )
        assert result["smtp_password"] == "***REDACTED***"
        assert result["TWILIO_AUTH_TOKEN"] == "***REDACTED***"
        assert result["fcm_server_key"] == "***REDACTED***"
        assert result["x_webhook_signature"] == "***REDACTED***"
        assert result["recipient"] == "user@example.com"

    def test_none_values_stay_none(self):
        result = mask_sensitive_data()(None, "info", {"password": None})
        assert result["password"] is None

    def test_additional_patterns(self):
        processor = mask_sensitive_data(
            mask_value="[x]", additional_patterns=frozenset({"phone"})
        )
        assert processor(None, "info", {"phone_number": "+1555"})["phone_number"] == "[x]"

    def test_patterns_cover_credentials(self):
        assert {"password", "token", "secret", "server_key"} <= SENSITIVE_PATTERNS


@pytest.mark.unit
class TestTruncateLargeValues:
    def test_truncates_long_strings(self):
        result = truncate_large_values(max_length=10)(None, "info", {"body": "x" * 25})
        assert result["body"].startswith("x" * 10)
        assert "25 chars total" in result["body"]

    def test_leaves_short_values(self):
        result = truncate_large_values(max_length=10)(None, "info", {"body": "short"})
        assert result["body"] == "short"


@pytest.mark.unit
def test_add_environment_info():
    result = add_environment_info("staging")(None, "info", {})
    assert result["environment"] == "staging"
