# edinet_extractor/core/logging.py
import logging
import logging.config
import sys
from pathlib import Path
from typing import Any, Optional

import structlog
from structlog.types import Processor

from edinet_extractor.core.config import settings


# --- Custom Processors ---
def add_app_context(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Add application context to all log entries."""
    event_dict["app"] = settings.name
    event_dict["version"] = settings.version
    return event_dict


def configure_logging(log_level: str = settings.logging.level, log_dir: Optional[str] = settings.logging.log_dir):
    """
    Configure structured logging for the extractor.
    - Logs are sent to the console with human-readable output.
    - When a log directory is configured, logs are also written to a rotating file in JSON format.
    """
    log_level = log_level.upper()

    # Define shared processors for all logs
    shared_processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        add_app_context,
    ]

    handlers: dict = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "console",
            "stream": sys.stdout,
        },
    }
    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.TimedRotatingFileHandler",
            "filename": log_path / "extractor.log",
            "when": "D",
            "interval": 1,
            "backupCount": 7,
            "formatter": "json",
        }

    # Configure the standard library logging foundation
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,  # Keep third-party loggers
            "formatters": {
                "json": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "processor": structlog.processors.JSONRenderer(ensure_ascii=False),
                    "foreign_pre_chain": shared_processors,
                },
                "console": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "processor": structlog.dev.ConsoleRenderer(colors=False),
                    "foreign_pre_chain": shared_processors,
                },
            },
            "handlers": handlers,
            "loggers": {
                "edinet_extractor": {
                    "handlers": list(handlers),
                    "level": log_level,
                    "propagate": False,  # Do not pass logs to the root logger
                },
            },
        }
    )

    # Configure structlog to wrap the standard library logging
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """
    Get a pre-configured structlog logger.
    The name should live under the `edinet_extractor` logger configured above.
    Using `__name__` is standard practice.
    """
    return structlog.get_logger(name)


logger = get_logger("edinet_extractor")
