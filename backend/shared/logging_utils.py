"""
Logging utilities for the quiz video backend.
"""
import logging

from shared.config import config

LOG_FORMAT = "%(asctime)s - {service} - %(levelname)s - %(message)s"


def setup_logging(service_name: str, log_level: str | None = None) -> logging.Logger:
    """
    Setup logging configuration for a service.

    Args:
        service_name: Name of the service for log identification
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Defaults to the configured ``log_level``.

    Returns:
        Configured logger instance
    """
    level_name = str(log_level or config.get("log_level", "INFO")).upper()
    logger = logging.getLogger(service_name)
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT.format(service=service_name)))
        logger.addHandler(handler)

    return logger
