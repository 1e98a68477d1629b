"""
Structured logging for the deploy logger.

structlog renders through stdlib logging, so werkzeug/SQLAlchemy records and
our own events end up in the same handlers with the same format.
"""
import logging
import logging.config
import os
import sys
import time
import uuid
from typing import Optional

import structlog

ROTATE_BYTES = 10 * 1024 * 1024
ROTATE_BACKUPS = 5

# Applied to records that did not originate from structlog as well
_SHARED_PROCESSORS = [
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
]


def _formatter(renderer):
    return {
        "()": structlog.stdlib.ProcessorFormatter,
        "foreign_pre_chain": _SHARED_PROCESSORS,
        "processors": [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    }


def _handlers(log_level: str, log_file: Optional[str], json_logs: bool) -> dict:
    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": "json" if json_logs else "console",
            "stream": sys.stdout,
        }
    }
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        # Files are always JSON so they can be shipped as-is
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": log_level,
            "formatter": "json",
            "filename": log_file,
            "maxBytes": ROTATE_BYTES,
            "backupCount": ROTATE_BACKUPS,
        }
    return handlers


def configure_logging(log_level: str = "INFO", log_file: Optional[str] = None, json_logs: bool = False):
    """
    Route structlog and stdlib logging through one set of handlers.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional path of a rotating JSON log file; stdout only when None
        json_logs: Render console output as JSON instead of key=value text
    """
    log_level = log_level.upper()
    handlers = _handlers(log_level, log_file, json_logs)

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": _formatter(structlog.dev.ConsoleRenderer(colors=False)),
            "json": _formatter(structlog.processors.JSONRenderer()),
        },
        "handlers": handlers,
        "root": {"level": log_level, "handlers": list(handlers)},
        "loggers": {
            # Request lines from the dev server are noise next to store events
            "werkzeug": {"level": "WARNING"},
            "sqlalchemy.engine": {"level": "WARNING"},
        },
    })

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_SHARED_PROCESSORS,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logger = get_logger("deploy_logger")
    logger.info("Logging configured", level=log_level, file=log_file, json=json_logs)
    return logger


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


class StoreOperationContext:
    """
    Log one store mutation: a debug line on entry, then exactly one
    completed/failed line with the elapsed time. Exceptions propagate.
    """

    def __init__(self, operation_type: str, operation_id: Optional[str] = None, **context):
        self.operation_type = operation_type
        self.operation_id = operation_id or uuid.uuid4().hex[:8]
        self.log = get_logger("deploy_logger.store").bind(
            operation=operation_type, operation_id=self.operation_id, **context
        )
        self._started = None

    def __enter__(self):
        self._started = time.monotonic()
        self.log.debug("Store operation started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration_ms = round((time.monotonic() - self._started) * 1000, 2)
        if exc_type is None:
            self.log.info("Store operation completed", duration_ms=duration_ms)
        else:
            self.log.warning(
                "Store operation failed",
                duration_ms=duration_ms,
                error_type=exc_type.__name__,
                error=str(exc_val),
            )
        return False
