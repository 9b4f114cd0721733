"""
Logging configuration for recall-core.

Modules log through `logging.getLogger(__name__)`; applications call
setup_logging() once at startup.
"""

import logging
import sys
from typing import Optional

from recall_core.errors import ConfigurationError

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Configure the recall_core logger with a stdout handler.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR); defaults to
            the RECALL_LOG_LEVEL setting

    Returns:
        The configured package logger
    """
    if level is None:
        from recall_core.config import load_settings
        level = load_settings().log_level

    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ConfigurationError(f"Unknown log level: {level}")

    logger = logging.getLogger("recall_core")
    logger.setLevel(numeric_level)

    # Replace handlers from an earlier call
    logger.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False

    return logger
