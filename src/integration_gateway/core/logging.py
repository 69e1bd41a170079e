"""
Logging configuration for the Integration Gateway.

Everything is routed through the standard library so that modules using plain
``logging.getLogger`` with ``extra=`` and modules using structlog end up on the
same stream, rendered as JSON in production and as console output locally.
"""

import logging
import sys
from typing import Any, Dict, Optional, Union

import structlog

from integration_gateway.core.config import Settings, settings as default_settings

# Chatty third-party loggers that only matter when debugging a transport
NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Configure structlog and the stdlib root logger from settings."""
    settings = settings or default_settings
    level = getattr(logging, settings.LOG_LEVEL.upper())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            _service_info_adder(settings),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _get_renderer(settings),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    noisy_level = logging.DEBUG if settings.DEBUG else max(level, logging.WARNING)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)


def _service_info_adder(settings: Settings):
    service = settings.SERVICE_NAME
    version = settings.SERVICE_VERSION

    def add_service_info(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("service", service)
        event_dict.setdefault("version", version)
        return event_dict

    return add_service_info


def _get_renderer(settings: Settings) -> Union[structlog.processors.JSONRenderer, structlog.dev.ConsoleRenderer]:
    if settings.LOG_FORMAT == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=settings.DEBUG)


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)
