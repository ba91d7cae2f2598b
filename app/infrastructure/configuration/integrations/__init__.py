"""Integration settings __init__ - exports all provider settings."""

from infrastructure.configuration.integrations.fcm import FcmSettings
from infrastructure.configuration.integrations.smtp import SmtpSettings
from infrastructure.configuration.integrations.twilio import TwilioSettings
from infrastructure.configuration.integrations.webhook import WebhookSettings

__all__ = [
    "SmtpSettings",
    "TwilioSettings",
    "FcmSettings",
    "WebhookSettings",
]
