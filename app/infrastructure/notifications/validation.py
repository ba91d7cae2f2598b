"""Submission-time validation of notification requests.

Recipient formats are checked per channel before anything is persisted:

- email: ``local@domain.tld`` pattern
- sms: E.164-like number, optional leading ``+``, up to 15 digits

Patterns must match the whole recipient; a trailing newline is rejected.
- push: device token of at least 10 characters
- webhook: absolute ``http://`` or ``https://`` URL
- in_app: any non-empty recipient (a user or topic id)
"""

import re
from typing import Callable, Dict

from infrastructure.notifications.errors import NotificationValidationError
from infrastructure.notifications.models import NotificationChannel, NotificationRequest

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
PHONE_PATTERN = re.compile(r"\+?[1-9]\d{1,14}")
MIN_PUSH_TOKEN_LENGTH = 10


def _validate_email(recipient: str) -> None:
    if not EMAIL_PATTERN.fullmatch(recipient):
        raise NotificationValidationError(
            f"invalid email address: {recipient}", field="recipient"
        )


def _validate_phone(recipient: str) -> None:
    if not PHONE_PATTERN.fullmatch(recipient):
        raise NotificationValidationError(
            f"invalid phone number: {recipient}", field="recipient"
        )


def _validate_push_token(recipient: str) -> None:
    if len(recipient) < MIN_PUSH_TOKEN_LENGTH:
        raise NotificationValidationError(
            "invalid push token: too short", field="recipient"
        )


def _validate_webhook_url(recipient: str) -> None:
    if not recipient.startswith(("http://", "https://")):
        raise NotificationValidationError(
            f"invalid webhook url: {recipient}", field="recipient"
        )


RECIPIENT_VALIDATORS: Dict[NotificationChannel, Callable[[str], None]] = {
    NotificationChannel.EMAIL: _validate_email,
    NotificationChannel.SMS: _validate_phone,
    NotificationChannel.PUSH: _validate_push_token,
    NotificationChannel.WEBHOOK: _validate_webhook_url,
}


def validate_request(request: NotificationRequest) -> None:
    """Validate a submission.

    Raises:
        NotificationValidationError: On the first problem found
    """
    if not request.tenant_id or not request.tenant_id.strip():
        raise NotificationValidationError("tenant id is required", field="tenant_id")

    if request.user_id is not None and not request.user_id.strip():
        raise NotificationValidationError(
            "user id must not be blank when provided", field="user_id"
        )

    if not request.message or not request.message.strip():
        raise NotificationValidationError("message is required", field="message")

    if not request.recipient or not request.recipient.strip():
        raise NotificationValidationError("recipient is required", field="recipient")

    validator = RECIPIENT_VALIDATORS.get(request.channel)
    if validator is not None:
        validator(request.recipient)
