from __future__ import annotations

import logging
import os

LOGGER_NAME = "cart_matcher"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"


def configure_logging(level: str | None = None) -> logging.Logger:
    """Attach a single stream handler to the package logger.

    Library modules only call ``logging.getLogger(__name__)``; the CLI calls
    this once so that library use never installs handlers on its own.
    """
    level = (level or os.environ.get("CART_MATCHER_LOG_LEVEL", "INFO")).upper()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    if not logger.handlers:
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(ch)
    return logger
