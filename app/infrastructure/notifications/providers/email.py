"""Email provider using an SMTP relay."""

import smtplib
from email.message import EmailMessage
from typing import Callable, Dict

from infrastructure.configuration.integrations import SmtpSettings
from infrastructure.logging import get_module_logger
from infrastructure.notifications.models import NotificationChannel
from infrastructure.notifications.providers.base import NotificationProvider
from infrastructure.operations import OperationResult

logger = get_module_logger()

# Metadata keys with this prefix become extra message headers.
HEADER_PREFIX = "header_"


def _to_html(body: str) -> str:
    if "<html>" in body or "<div>" in body:
        return body
    return "<html>\n<body>\n" + body.replace("\n", "<br>") + "\n</body>\n</html>"


class EmailProvider(NotificationProvider):
    """SMTP email provider.

    Plain-text bodies are sent with an HTML alternative; bodies that already
    contain HTML are sent as-is.

    Args:
        settings: SMTP relay settings
        smtp_factory: Callable returning an ``smtplib.SMTP``-like client
    """

    def __init__(
        self,
        settings: SmtpSettings,
        smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP,
    ):
        self._settings = settings
        self._smtp_factory = smtp_factory

    @property
    def channel(self) -> NotificationChannel:
        return NotificationChannel.EMAIL

    @property
    def provider_name(self) -> str:
        return "smtp"

    def compose(
        self, recipient: str, subject: str, body: str, metadata: Dict[str, str]
    ) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._settings.SMTP_FROM_EMAIL
        message["To"] = recipient
        message["Subject"] = subject

        for key, value in metadata.items():
            if key.startswith(HEADER_PREFIX) and len(key) > len(HEADER_PREFIX):
                message[key[len(HEADER_PREFIX) :]] = value

        html = _to_html(body)
        if html is body:
            message.set_content(body, subtype="html")
        else:
            message.set_content(body)
            message.add_alternative(html, subtype="html")
        return message

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
                "SMTP relay is not configured", error_code="NOT_CONFIGURED"
            )

        message = self.compose(recipient, subject, body, metadata)

        try:
            with self._smtp_factory(
                self._settings.SMTP_HOST, self._settings.SMTP_PORT, timeout=timeout
            ) as smtp:
                if self._settings.SMTP_USE_TLS:
                    smtp.starttls()
                if self._settings.SMTP_USERNAME:
                    smtp.login(
                        self._settings.SMTP_USERNAME, self._settings.SMTP_PASSWORD or ""
                    )
                smtp.send_message(message)
        except smtplib.SMTPRecipientsRefused as exc:
            return OperationResult.permanent_error(
                f"recipient refused: {exc.recipients}", error_code="RECIPIENT_REFUSED"
            )
        except smtplib.SMTPAuthenticationError as exc:
            return OperationResult.permanent_error(
                f"SMTP authentication failed ({exc.smtp_code})",
                error_code="UNAUTHORIZED",
            )
        except smtplib.SMTPResponseException as exc:
            message_text = f"SMTP error ({exc.smtp_code}): {exc.smtp_error!r}"
            if 500 <= exc.smtp_code < 600:
                return OperationResult.permanent_error(
                    message_text, error_code="SMTP_REJECTED"
                )
            return OperationResult.transient_error(
                message_text, error_code="SMTP_DEFERRED"
            )
        except (smtplib.SMTPException, OSError) as exc:
            return OperationResult.transient_error(
                f"SMTP connection error: {type(exc).__name__}: {exc}",
                error_code="CONNECTION_ERROR",
            )

        logger.info("email_sent", recipient=recipient, subject=subject)
        return OperationResult.success(message="email accepted by relay")

    def health_check(self) -> OperationResult:
        if not self._settings.is_configured:
            return OperationResult.permanent_error(
                "SMTP relay is not configured", error_code="NOT_CONFIGURED"
            )
        try:
            with self._smtp_factory(
                self._settings.SMTP_HOST, self._settings.SMTP_PORT, timeout=5
            ) as smtp:
                smtp.noop()
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("smtp_health_check_failed", error=str(exc))
            return OperationResult.transient_error(
                f"SMTP relay unreachable: {exc}", error_code="HEALTH_CHECK_ERROR"
            )
        return OperationResult.success(
            message="SMTP relay reachable", data={"host": self._settings.SMTP_HOST}
        )
