"""Channel providers.

One provider per channel:

| Channel  | Provider          | Name      |
|----------|-------------------|-----------|
| email    | EmailProvider     | smtp      |
| sms      | SMSProvider       | twilio    |
| push     | PushProvider      | fcm       |
| webhook  | WebhookProvider   | webhook   |
| in_app   | InAppProvider     | in_app    |
"""

from infrastructure.notifications.providers.base import NotificationProvider
from infrastructure.notifications.providers.email import EmailProvider
from infrastructure.notifications.providers.in_app import InAppProvider
from infrastructure.notifications.providers.push import PushProvider
from infrastructure.notifications.providers.sms import SMSProvider
from infrastructure.notifications.providers.webhook import WebhookProvider

__all__ = [
    "NotificationProvider",
    "EmailProvider",
    "InAppProvider",
    "PushProvider",
    "SMSProvider",
    "WebhookProvider",
]
