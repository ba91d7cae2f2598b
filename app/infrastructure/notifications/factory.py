"""Factory for wiring a delivery engine from settings."""

from typing import Dict, Optional

import requests

from infrastructure.configuration import Settings
from infrastructure.events import EventPublisher, InProcessEventPublisher
from infrastructure.logging import get_module_logger
from infrastructure.notifications.engine import DeliveryEngine, provider_responded
from infrastructure.notifications.models import NotificationChannel
from infrastructure.notifications.providers import (
    EmailProvider,
    InAppProvider,
    NotificationProvider,
    PushProvider,
    SMSProvider,
    WebhookProvider,
)
from infrastructure.notifications.store import (
    InMemoryNotificationStore,
    NotificationStore,
)
from infrastructure.resilience import (
    BreakerConfig,
    BreakerRegistry,
    RateLimit,
    RateLimiter,
)

logger = get_module_logger()


def build_providers(
    settings: Settings,
    publisher: EventPublisher,
    session: Optional[requests.Session] = None,
) -> Dict[NotificationChannel, NotificationProvider]:
    """Create one provider per channel. HTTP providers share ``session``."""
    session = session or requests.Session()
    providers: list[NotificationProvider] = [
        EmailProvider(settings.smtp),
        SMSProvider(settings.twilio, session=session),
        PushProvider(settings.fcm, session=session),
        WebhookProvider(settings.webhook, session=session),
        InAppProvider(publisher),
    ]
    return {provider.channel: provider for provider in providers}


def build_breaker_registry(settings: Settings) -> BreakerRegistry:
    """Breakers use the configured defaults plus per-provider overrides.

    Permanent provider errors are treated as successful calls so a batch of
    bad recipients cannot open a healthy provider's breaker.
    """
    cb = settings.circuit_breaker
    overrides = {
        name: BreakerConfig.from_mapping(cb.for_provider(name)) for name in cb.overrides
    }
    return BreakerRegistry(
        default_config=BreakerConfig.from_mapping(cb.for_provider("")),
        overrides=overrides,
        is_successful=provider_responded,
    )


def build_rate_limiter(settings: Settings) -> RateLimiter:
    limits = settings.rate_limits
    return RateLimiter(
        default_limit=RateLimit(rate=limits.default_rate, burst=limits.default_burst),
        category_limits={
            channel: RateLimit(rate=rate, burst=burst)
            for channel, (rate, burst) in limits.channel_budgets().items()
        },
    )


def create_delivery_engine(
    settings: Settings,
    store: Optional[NotificationStore] = None,
    publisher: Optional[EventPublisher] = None,
    providers: Optional[Dict[NotificationChannel, NotificationProvider]] = None,
) -> DeliveryEngine:
    """Factory to create a fully wired DeliveryEngine.

    Args:
        settings: Application settings
        store: Optional store, defaults to the in-memory store
        publisher: Optional publisher, defaults to the in-process publisher
        providers: Optional providers, defaults to the configured providers

    Returns:
        DeliveryEngine ready to accept submissions
    """
    publisher = publisher or InProcessEventPublisher()
    store = store or InMemoryNotificationStore()
    providers = providers or build_providers(settings, publisher)

    logger.info(
        "creating_delivery_engine",
        store=type(store).__name__,
        channels=sorted(channel.value for channel in providers),
        max_workers=settings.delivery.max_workers,
        max_retries=settings.delivery.max_retries,
    )

    return DeliveryEngine(
        store=store,
        providers=providers,
        breakers=build_breaker_registry(settings),
        rate_limiter=build_rate_limiter(settings),
        publisher=publisher,
        settings=settings.delivery,
        timeouts=settings.timeouts,
    )
