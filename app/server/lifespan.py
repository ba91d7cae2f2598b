from contextlib import asynccontextmanager
import sys
import threading
from typing import AsyncIterator, Optional, TYPE_CHECKING, cast

from fastapi import FastAPI
from structlog.stdlib import BoundLogger

from infrastructure.logging.setup import configure_logging
from infrastructure.services import get_delivery_engine, get_settings
from jobs import scheduled_tasks

if TYPE_CHECKING:
    from infrastructure.configuration import Settings
    from infrastructure.notifications import DeliveryEngine

SHUTDOWN_DRAIN_SECONDS = 30


def _is_test_environment() -> bool:
    """Detect if running in a test environment."""
    return "pytest" in sys.modules


def _list_configs(settings: "Settings", logger: BoundLogger) -> None:
    """Log top-level values and, per settings section, only the key names."""
    dumped = settings.model_dump()
    base = [{key: value} for key, value in dumped.items() if not isinstance(value, dict)]
    logger.info("configuration_initialized", base_settings=base)

    for section, values in dumped.items():
        if isinstance(values, dict):
            logger.info("configuration_loaded", config_setting=section, keys=list(values))


def _start_scheduled_tasks(
    engine: "DeliveryEngine",
    settings: "Settings",
    logger: BoundLogger,
) -> Optional[threading.Event]:
    if not settings.delivery.sweeps_enabled:
        logger.info("scheduled_tasks_skipped", reason="sweeps_disabled")
        return None
    if _is_test_environment():
        logger.info("scheduled_tasks_skipped", reason="test_environment")
        return None

    scheduled_tasks.init(engine, settings.delivery)
    stop_event = cast(Optional[threading.Event], scheduled_tasks.run_continuously())
    logger.info("scheduled_tasks_started")
    return stop_event


def _stop_scheduled_tasks(stop_event: Optional[threading.Event]) -> None:
    if stop_event is None:
        return
    stop_event.set()
    scheduled_tasks.clear()


def _stop_engine(engine: "DeliveryEngine", logger: BoundLogger) -> None:
    drained = engine.drain(timeout=SHUTDOWN_DRAIN_SECONDS)
    if not drained:
        logger.warning(
            "delivery_engine_drain_incomplete",
            in_flight=engine.in_flight(),
            timeout=SHUTDOWN_DRAIN_SECONDS,
        )
    engine.shutdown(wait=drained)
    get_delivery_engine.cache_clear()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    logger = configure_logging(settings=settings)

    app.state.settings = settings
    app.state.logger = logger

    logger.info("application_startup")
    _list_configs(settings, logger)

    engine = get_delivery_engine()
    app.state.engine = engine
    app.state.scheduled_stop_event = _start_scheduled_tasks(engine, settings, logger)

    yield

    logger.info("application_shutdown")

    _stop_scheduled_tasks(app.state.scheduled_stop_event)
    _stop_engine(app.state.engine, logger)
