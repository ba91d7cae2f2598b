"""Structlog pipeline for the delivery service.

Rendering depends on where the process runs: colored console lines in
development, JSON lines in production. Under pytest every record is
dropped so test output stays readable.
"""

import inspect
import logging
import sys
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Sequence

import structlog
from structlog.stdlib import BoundLogger

from infrastructure.logging.formatters import (
    add_app_info,
    add_environment_info,
    mask_sensitive_data,
    truncate_large_values,
)

if TYPE_CHECKING:
    from infrastructure.configuration import Settings

APP_NAME = "notification-delivery"
SILENT = logging.CRITICAL + 1

Processor = Callable[..., Any]


def _running_under_pytest() -> bool:
    return "pytest" in sys.modules


def _shared_processors(settings: "Settings") -> List[Processor]:
    """Enrichment steps applied before any renderer.

    Context variables (correlation, tenant and notification ids) are merged
    first so the masking step also sees them.
    """
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ]
        ),
        add_app_info(APP_NAME, settings.GIT_SHA),
        add_environment_info(settings.PREFIX or "production"),
        mask_sensitive_data(),
        truncate_large_values(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _apply(processors: Sequence[Processor], level: int) -> BoundLogger:
    structlog.configure(
        processors=list(processors),
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", level=level, force=True)
    return structlog.stdlib.get_logger()


def configure_logging(
    settings: Optional["Settings"] = None,
    log_level: Optional[str] = None,
    is_production: Optional[bool] = None,
    extra_processors: Optional[Sequence[Processor]] = None,
) -> BoundLogger:
    """Configure structlog for the whole process and return a root logger.

    Args:
        settings: Source of the log level, environment and version. Read
            from the environment when omitted.
        log_level: Overrides ``settings.LOG_LEVEL``.
        is_production: Overrides ``settings.is_production``; selects JSON
            output over the console renderer.
        extra_processors: Inserted just before the renderer.
    """
    if _running_under_pytest():
        logging.root.setLevel(SILENT)
        return _apply(
            [
                structlog.stdlib.add_log_level,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            SILENT,
        )

    if settings is None:
        from infrastructure.configuration import Settings

        settings = Settings()

    production = settings.is_production if is_production is None else is_production
    renderer = (
        structlog.processors.JSONRenderer()
        if production
        else structlog.dev.ConsoleRenderer()
    )

    processors = _shared_processors(settings)
    processors.extend(extra_processors or [])
    processors.append(renderer)

    level_name = (log_level or settings.LOG_LEVEL).upper()
    return _apply(processors, getattr(logging, level_name, logging.INFO))


logger: BoundLogger = configure_logging()


def get_module_logger() -> BoundLogger:
    """Logger bound to the calling module.

    Adds ``component`` (the module's last dotted segment, e.g. ``engine``)
    and ``module_path`` (``infrastructure.notifications.engine``).
    """
    frame = inspect.currentframe()
    caller = frame.f_back if frame is not None else None
    module = inspect.getmodule(caller) if caller is not None else None
    if module is None:
        return logger.bind(component="unknown")

    return logger.bind(
        component=module.__name__.rsplit(".", 1)[-1],
        module_path=module.__name__,
    )
