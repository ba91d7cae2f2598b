"""Webhook provider delivering signed JSON payloads over HTTP."""

import hashlib
import hmac
import json
import time
from typing import Any, Callable, Dict, Optional
from uuid import uuid4

import requests

from infrastructure.configuration.integrations import WebhookSettings
from infrastructure.logging import get_module_logger
from infrastructure.notifications.models import NotificationChannel
from infrastructure.notifications.providers.base import NotificationProvider
from infrastructure.operations import (
    OperationResult,
    classify_http_response,
    classify_request_exception,
)

logger = get_module_logger()

WEBHOOK_EVENT = "notification.delivered"
# Metadata keys with this prefix become request headers.
HEADER_PREFIX = "webhook_header_"


def sign_payload(secret: str, body: bytes) -> str:
    """Return the ``X-Webhook-Signature`` value for ``body``."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def build_webhook_payload(
    notification_id: str,
    url: str,
    title: str,
    body: str,
    metadata: Dict[str, str],
    timestamp: int,
) -> Dict[str, Any]:
    return {
        "id": notification_id,
        "event": WEBHOOK_EVENT,
        "timestamp": timestamp,
        "data": {"title": title, "body": body, "url": url},
        "metadata": {
            k: v for k, v in metadata.items() if not k.startswith(HEADER_PREFIX)
        },
    }


class WebhookProvider(NotificationProvider):
    """Outbound webhook provider.

    The recipient is the target URL. When a secret is configured the raw
    JSON body is signed with HMAC-SHA256 so receivers can verify it.
    """

    def __init__(
        self,
        settings: WebhookSettings,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._settings = settings
        self._session = session or requests.Session()
        self._clock = clock

    @property
    def channel(self) -> NotificationChannel:
        return NotificationChannel.WEBHOOK

    @property
    def provider_name(self) -> str:
        return "webhook"

    def build_request(
        self, recipient: str, subject: str, body: str, metadata: Dict[str, str]
    ) -> tuple[bytes, Dict[str, str]]:
        """Serialize the payload and compute headers for one delivery."""
        timestamp = int(self._clock())
        payload = build_webhook_payload(
            metadata.get("notification_id") or uuid4().hex,
            recipient,
            subject,
            body,
            metadata,
            timestamp,
        )
        raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")

        headers = {
            "Content-Type": "application/json",
            "User-Agent": self._settings.WEBHOOK_USER_AGENT,
            "X-Webhook-Timestamp": str(timestamp),
        }
        if self._settings.WEBHOOK_SECRET_KEY:
            headers["X-Webhook-Signature"] = sign_payload(
                self._settings.WEBHOOK_SECRET_KEY, raw
            )
        for key, value in metadata.items():
            if key.startswith(HEADER_PREFIX) and len(key) > len(HEADER_PREFIX):
                headers[key[len(HEADER_PREFIX) :]] = value

        return raw, headers

    def send(
        self,
        recipient: str,
        subject: str,
        body: str,
        metadata: Dict[str, str],
        timeout: float,
    ) -> OperationResult:
        raw, headers = self.build_request(recipient, subject, body, metadata)

        try:
            response = self._session.post(
                recipient, data=raw, headers=headers, timeout=timeout
            )
        except requests.RequestException as exc:
            return classify_request_exception(exc, provider=self.provider_name)

        result = classify_http_response(response, provider=self.provider_name)
        if result.is_success:
            logger.info("webhook_delivered", url=recipient, status_code=response.status_code)
        else:
            logger.warning(
                "webhook_failed",
                url=recipient,
                status_code=response.status_code,
                error=result.message,
            )
        return result

    def health_check(self) -> OperationResult:
        return OperationResult.success(
            message="webhook provider ready",
            data={"signing_enabled": bool(self._settings.WEBHOOK_SECRET_KEY)},
        )
