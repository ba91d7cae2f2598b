"""SMS provider using the Twilio REST API."""

from typing import Dict, Optional

import requests

from infrastructure.configuration.integrations import TwilioSettings
from infrastructure.logging import get_module_logger
from infrastructure.notifications.models import NotificationChannel
from infrastructure.notifications.providers.base import NotificationProvider
from infrastructure.operations import (
    OperationResult,
    classify_http_response,
    classify_request_exception,
)

logger = get_module_logger()

SMS_MAX_LENGTH = 160


def compose_sms_body(subject: str, body: str) -> str:
    """Prefix the subject and truncate to a single SMS segment."""
    text = f"{subject}: {body}" if subject else body
    if len(text) > SMS_MAX_LENGTH:
        text = text[: SMS_MAX_LENGTH - 3] + "..."
    return text


def normalize_phone_number(phone: str) -> str:
    """Strip formatting characters and ensure a leading ``+``."""
    digits = "".join(ch for ch in phone if ch.isdigit())
    return f"+{digits}"


class SMSProvider(NotificationProvider):
    """Twilio SMS provider.

    Args:
        settings: Twilio account settings
        session: Optional requests session (shared connection pool)
    """

    def __init__(
        self, settings: TwilioSettings, session: Optional[requests.Session] = None
    ):
        self._settings = settings
        self._session = session or requests.Session()

    @property
    def channel(self) -> NotificationChannel:
        return NotificationChannel.SMS

    @property
    def provider_name(self) -> str:
        return "twilio"

    @property
    def _auth(self) -> tuple[str, str]:
        return (self._settings.TWILIO_ACCOUNT_SID, self._settings.TWILIO_AUTH_TOKEN or "")

    def send(
        self,
        recipient: str,
        subject: str,
        body: str,
        metadata: Dict[str, str],
        timeout: float,
    ) -> OperationResult:
        if not self._settings.is_configured:
            return OperationResult.permanent_error(
                "Twilio is not configured", error_code="NOT_CONFIGURED"
            )

        to = normalize_phone_number(recipient)
        url = (
            f"{self._settings.TWILIO_API_URL}/Accounts/"
            f"{self._settings.TWILIO_ACCOUNT_SID}/Messages.json"
        )
        form = {
            "From": self._settings.TWILIO_FROM_NUMBER,
            "To": to,
            "Body": compose_sms_body(subject, body),
        }

        try:
            response = self._session.post(url, data=form, auth=self._auth, timeout=timeout)
        except requests.RequestException as exc:
            return classify_request_exception(exc, provider=self.provider_name)

        result = classify_http_response(response, provider=self.provider_name)
        if not result.is_success:
            logger.warning(
                "sms_failed",
                status_code=response.status_code,
                error=result.message,
            )
            return result

        message_sid = None
        try:
            message_sid = response.json().get("sid")
        except ValueError:
            pass  # accepted without a JSON body

        logger.info("sms_sent", message_sid=message_sid)
        return OperationResult.success(
            data={"message_sid": message_sid, "to": to}, message="sms queued"
        )

    def health_check(self) -> OperationResult:
        if not self._settings.is_configured:
            return OperationResult.permanent_error(
                "Twilio is not configured", error_code="NOT_CONFIGURED"
            )
        url = (
            f"{self._settings.TWILIO_API_URL}/Accounts/"
            f"{self._settings.TWILIO_ACCOUNT_SID}.json"
        )
        try:
            response = self._session.get(url, auth=self._auth, timeout=5)
        except requests.RequestException as exc:
            return classify_request_exception(exc, provider=self.provider_name)
        return classify_http_response(response, provider=self.provider_name)
