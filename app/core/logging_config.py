"""
Logging configuration for the service.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s level=%(levelname)s logger=%(name)s %(message)s"


def setup_logging(level: str = "INFO", logger_name: str = "app") -> logging.Logger:
    """
    Configure the application logger.

    Installs a single stdout handler on the ``app`` logger so every module
    logger created with ``logging.getLogger(__name__)`` inherits it.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        logger_name: Name of the parent logger

    Returns:
        The configured logger
    """
    logger = logging.getLogger(logger_name)

    # Remove existing handlers to avoid duplicates on reload
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False

    return logger
