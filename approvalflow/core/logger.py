"""Logging setup for ApprovalFlow.

All modules log through children of the ``approvalflow`` logger. The
application configures that one logger from Settings: console output,
optional rotating file output, ISO 8601 timestamps.
"""

import logging
import logging.handlers
import os

from approvalflow.core.config import Settings

LOGGER_NAME = "approvalflow"
LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Handlers installed here carry this name prefix so reconfiguring replaces them
_HANDLER_PREFIX = "approvalflow."


def configure_logging(settings: Settings) -> logging.Logger:
    """Configure the package logger from ``settings``.

    Safe to call repeatedly: handlers from an earlier call are closed and
    replaced, so a new app instance never duplicates output.

    Raises:
        ValueError: If ``settings.log_level`` is not a standard level name
    """
    level = settings.log_level.upper()
    if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        raise ValueError(
            f"Invalid log level: {settings.log_level}. "
            f"Must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL"
        )

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    remove_handlers(logger)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.set_name(_HANDLER_PREFIX + "console")
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if settings.log_file_enabled:
        os.makedirs(settings.log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            os.path.join(settings.log_dir, f"{LOGGER_NAME}.log"),
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backup_count,
        )
        file_handler.set_name(_HANDLER_PREFIX + "file")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def remove_handlers(logger: logging.Logger) -> None:
    """Close and detach the handlers configure_logging installed."""
    for handler in list(logger.handlers):
        if (handler.get_name() or "").startswith(_HANDLER_PREFIX):
            logger.removeHandler(handler)
            handler.close()
