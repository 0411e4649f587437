"""Structured logging configuration using structlog.

JSON lines in production, colored console output everywhere else. The retry
layer only ever emits events; whether they are shown is decided here, so the
orchestrator behaves the same at every level.
"""

import logging
import sys
from typing import TYPE_CHECKING

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

if TYPE_CHECKING:
    from fetch_retry.config import Settings

APP_NAME = "fetch-retry"

# Loggers of the HTTP stack that drown out retry events at DEBUG
_NOISY_LOGGERS = ("httpx", "httpcore", "asyncio")


def add_app_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Tag every event with the application name."""
    event_dict.setdefault("app", APP_NAME)
    return event_dict


def _renderer(json_output: bool) -> Processor:
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def configure_logging(
    log_level: str = "INFO",
    environment: str = "development",
    debug_mode: bool = False,
) -> None:
    """Configure structlog on top of stdlib logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        environment: "production" selects JSON output
        debug_mode: Show per-attempt retry diagnostics (forces DEBUG)
    """
    level = logging.DEBUG if debug_mode else getattr(logging, log_level.upper(), logging.INFO)
    json_output = environment.lower() == "production"

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_app_context,
    ]
    if json_output:
        # ConsoleRenderer formats exc_info itself
        shared_processors.append(structlog.processors.format_exc_info)

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=_renderer(json_output),
            foreign_pre_chain=shared_processors,
        )
    )
    handler.setLevel(level)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.get_logger(__name__).info(
        "Logging configured",
        log_level=logging.getLevelName(level),
        environment=environment,
        debug_mode=debug_mode,
        renderer="json" if json_output else "console",
    )


def configure_logging_from_settings(settings: "Settings") -> None:
    """Apply LOG_LEVEL, ENVIRONMENT and DEBUG_MODE from settings."""
    configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT, settings.DEBUG_MODE)
    structlog.contextvars.bind_contextvars(app_version=settings.APP_VERSION)
