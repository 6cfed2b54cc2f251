"""
Logging Configuration
====================

Structured logging for the card service. Every record carries the service
name and environment; records emitted while a request is being served also
carry its request id and path, bound once by the API middleware.
"""

import logging
import logging.config
import sys
from typing import Dict, Any, Optional, TYPE_CHECKING
import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from .settings import get_settings

if TYPE_CHECKING:
    from .settings import Settings

# Third-party loggers and the level they are held at
QUIET_LOGGERS = {
    "uvicorn": "INFO",
    "fastapi": "INFO",
    "aiohttp": "WARNING",
    "playwright": "WARNING",
}


def add_service_context(settings: "Settings") -> Processor:
    """Processor stamping records with the service name and environment."""

    def processor(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", settings.app_name)
        event_dict.setdefault("environment", settings.environment)
        return event_dict

    return processor


def setup_logging() -> None:
    """Setup application logging configuration."""
    settings = get_settings()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.environment == "production":
        # One JSON object per record, with service context for aggregation
        processors.append(add_service_context(settings))
        processors.append(structlog.processors.TimeStamper(fmt="iso", utc=True))
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=settings.environment != "testing"))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig(get_logging_config(settings))


def get_logging_config(settings: "Settings") -> Dict[str, Any]:
    """Get logging configuration dictionary."""
    production = settings.environment == "production"
    loggers: Dict[str, Any] = {
        "": {"level": settings.log_level, "handlers": ["console"], "propagate": False},
        "diarycard": {"level": settings.log_level, "handlers": ["console"], "propagate": False},
    }
    loggers.update(
        {
            name: {"level": level, "handlers": ["console"], "propagate": False}
            for name, level in QUIET_LOGGERS.items()
        }
    )

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json": {
                "()": "pythonjsonlogger.json.JsonFormatter",
                "format": "%(asctime)s %(name)s %(levelname)s %(message)s",
                "static_fields": {"service": settings.app_name},
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": settings.log_level,
                "formatter": "json" if production else "standard",
                "stream": sys.stdout,
            },
        },
        "loggers": loggers,
    }


def bind_request_context(request_id: str, path: Optional[str] = None) -> None:
    """Attach the current request to every record logged while serving it."""
    structlog.contextvars.clear_contextvars()
    context: Dict[str, Any] = {"request_id": request_id}
    if path is not None:
        context["path"] = path
    structlog.contextvars.bind_contextvars(**context)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


# Initialize logging on import
setup_logging()
