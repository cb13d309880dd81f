"""
coinguard - Structured Logging Configuration

Configures structured JSON logging for node deployments:
- JSON format for easy parsing and aggregation
- Log rotation to prevent disk space issues
- Console and file handlers

Library modules only call ``logging.getLogger(__name__)`` and attach
structured fields through ``extra``. Entry points call ``setup_logging``.

Usage:
    from coinguard.core.logging_config import setup_logging

    logger = setup_logging(name="coinguard", level="INFO")
    logger.info("Registry loaded", extra={"event": "infractions.loaded"})
"""

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any

from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter adding timestamp, network, service and source location.
    """

    def __init__(
        self,
        network: str,
        service_name: str = "coinguard",
        fmt: str = "%(timestamp)s %(level)s %(name)s %(message)s",
    ):
        super().__init__(fmt=fmt)
        self.network = network
        self.service_name = service_name

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        """Add custom fields to log record."""
        super().add_fields(log_record, record, message_dict)

        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()

        log_record["network"] = self.network
        log_record["service"] = self.service_name

        if not log_record.get("level"):
            log_record["level"] = record.levelname.lower()

        log_record["source"] = {
            "function": record.funcName,
            "module": record.module,
            "line": record.lineno,
        }


# Rotation limits for the optional log file
LOG_FILE_MAX_BYTES = 100 * 1024 * 1024  # 100MB
LOG_FILE_BACKUP_COUNT = 10


def setup_logging(
    name: str = "coinguard",
    network: str = "mainnet",
    log_file: Optional[str] = None,
    level: str = "INFO",
) -> logging.Logger:
    """
    Setup structured JSON logging.

    Args:
        name: Logger name (the package logger configures all coinguard modules)
        network: Network name stamped on every record
        log_file: Path to a rotating JSON log file (optional)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers to avoid duplicates
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = CustomJsonFormatter(network, service_name=name.split(".")[0])

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
