"""Push provider using the Firebase Cloud Messaging HTTP API."""

from typing import Any, Dict, Optional

import requests

from infrastructure.configuration.integrations import FcmSettings
from infrastructure.logging import get_module_logger
from infrastructure.notifications.models import NotificationChannel
from infrastructure.notifications.providers.base import NotificationProvider
from infrastructure.operations import (
    OperationResult,
    classify_http_response,
    classify_request_exception,
)

logger = get_module_logger()

TIME_TO_LIVE_SECONDS = 3600

# Per-token FCM errors that will not go away on retry.
PERMANENT_TOKEN_ERRORS = frozenset(
    {"NotRegistered", "InvalidRegistration", "MismatchSenderId", "MissingRegistration"}
)


def build_fcm_message(
    token: str, title: str, body: str, metadata: Dict[str, str]
) -> Dict[str, Any]:
    message: Dict[str, Any] = {
        "to": token,
        "notification": {"title": title, "body": body},
        "priority": "high",
        "time_to_live": TIME_TO_LIVE_SECONDS,
    }
    if metadata:
        message["data"] = dict(metadata)
    return message


class PushProvider(NotificationProvider):
    """FCM push provider.

    FCM answers 200 even when the device token is rejected; the per-token
    error in the response body decides between permanent and transient.
    """

    def __init__(self, settings: FcmSettings, session: Optional[requests.Session] = None):
        self._settings = settings
        self._session = session or requests.Session()

    @property
    def channel(self) -> NotificationChannel:
        return NotificationChannel.PUSH

    @property
    def provider_name(self) -> str:
        return "fcm"

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"key={self._settings.FCM_SERVER_KEY}",
            "Content-Type": "application/json",
        }

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
                "FCM is not configured", error_code="NOT_CONFIGURED"
            )

        message = build_fcm_message(recipient, subject, body, metadata)
        try:
            response = self._session.post(
                self._settings.FCM_API_URL,
                json=message,
                headers=self._headers(),
                timeout=timeout,
            )
        except requests.RequestException as exc:
            return classify_request_exception(exc, provider=self.provider_name)

        result = classify_http_response(response, provider=self.provider_name)
        if not result.is_success:
            logger.warning(
                "push_failed", status_code=response.status_code, error=result.message
            )
            return result

        try:
            content = response.json()
        except ValueError:
            content = {}

        if content.get("failure"):
            error = (content.get("results") or [{}])[0].get("error", "Unknown")
            if error in PERMANENT_TOKEN_ERRORS:
                return OperationResult.permanent_error(
                    f"fcm rejected device token: {error}", error_code=error
                )
            return OperationResult.transient_error(
                f"fcm delivery error: {error}", error_code=error
            )

        logger.info("push_sent", multicast_id=content.get("multicast_id"))
        return OperationResult.success(
            data={"multicast_id": content.get("multicast_id")}, message="push accepted"
        )

    def health_check(self) -> OperationResult:
        if not self._settings.is_configured:
            return OperationResult.permanent_error(
                "FCM is not configured", error_code="NOT_CONFIGURED"
            )
        probe = {"registration_ids": ["health-check"], "dry_run": True}
        try:
            response = self._session.post(
                self._settings.FCM_API_URL, json=probe, headers=self._headers(), timeout=5
            )
        except requests.RequestException as exc:
            return classify_request_exception(exc, provider=self.provider_name)
        return classify_http_response(response, provider=self.provider_name)
