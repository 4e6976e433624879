"""
Centralized Logging Configuration for the Lineageweaver sync engine.

Provides structured logging with console output, a rotating application log,
a rotating error log and a dedicated transfer log for bulk upload/download.
"""

import logging
import logging.handlers
import os
import sys
from typing import Optional
from datetime import datetime

from lineageweaver.config.settings import settings


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured logging."""

    def format(self, record):
        # Add custom fields to log record
        record.service_name = getattr(record, 'service_name', 'lineageweaver-sync')
        record.tenant_id = getattr(record, 'tenant_id', None)

        # Format timestamp
        record.timestamp = datetime.fromtimestamp(record.created).isoformat()

        return super().format(record)


def setup_logging(log_dir: Optional[str] = None) -> None:
    """Setup logging configuration for the sync engine."""

    log_dir = log_dir or settings.app.log_dir
    os.makedirs(log_dir, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.app.log_level.upper(), logging.INFO))

    # Clear existing handlers
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.INFO)

    console_format = (
        "%(asctime)s - %(name)s - %(levelname)s - "
        "%(message)s"
    )

    if settings.app.debug:
        console_format = (
            "%(asctime)s - %(name)s - %(levelname)s - "
            "[%(filename)s:%(lineno)d] - %(message)s"
        )

    console_handler.setFormatter(logging.Formatter(console_format))
    root_logger.addHandler(console_handler)

    app_file_handler = logging.handlers.RotatingFileHandler(
        filename=os.path.join(log_dir, "sync.log"),
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5
    )
    app_file_handler.setLevel(logging.INFO)
    app_file_handler.setFormatter(StructuredFormatter(
        "%(timestamp)s - %(name)s - %(levelname)s - "
        "%(service_name)s - %(tenant_id)s - %(message)s"
    ))
    root_logger.addHandler(app_file_handler)

    error_file_handler = logging.handlers.RotatingFileHandler(
        filename=os.path.join(log_dir, "errors.log"),
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10
    )
    error_file_handler.setLevel(logging.ERROR)
    error_file_handler.setFormatter(StructuredFormatter(
        "%(timestamp)s - %(name)s - %(levelname)s - "
        "%(service_name)s - %(tenant_id)s - %(message)s"
    ))
    root_logger.addHandler(error_file_handler)

    # Transfer log for bulk upload/download accounting
    transfer_logger = logging.getLogger("transfer")
    transfer_logger.setLevel(logging.INFO)
    transfer_logger.propagate = False

    transfer_file_handler = logging.handlers.RotatingFileHandler(
        filename=os.path.join(log_dir, "transfer.log"),
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10
    )
    transfer_file_handler.setFormatter(StructuredFormatter(
        "%(timestamp)s - %(tenant_id)s - %(direction)s - "
        "%(collection)s - %(count)s - %(message)s"
    ))
    transfer_logger.addHandler(transfer_file_handler)

    # Set specific logger levels
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)

    logging.info("Logging configuration initialized")


class LoggerAdapter(logging.LoggerAdapter):
    """Custom logger adapter for adding context to log messages."""

    def __init__(self, logger, extra=None):
        super().__init__(logger, extra or {})

    def process(self, msg, kwargs):
        if 'extra' not in kwargs:
            kwargs['extra'] = {}

        kwargs['extra'].update(self.extra)
        return msg, kwargs


def get_logger(name: str, **context) -> LoggerAdapter:
    """Get a logger with optional context."""
    logger = logging.getLogger(name)
    return LoggerAdapter(logger, context)


def log_transfer_event(
    tenant_id: str,
    direction: str,
    collection: str,
    count: int,
    message: str = "",
) -> None:
    """Log a bulk transfer event."""
    transfer_logger = logging.getLogger("transfer")

    transfer_logger.info(
        message or f"{direction} {count} {collection}",
        extra={
            "tenant_id": tenant_id,
            "direction": direction,
            "collection": collection,
            "count": count,
        }
    )
