"""Logging for Cortex Core: one stdout handler on the "cortex" logger."""

import logging
import sys
from typing import Optional, Union

from cortex.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Optional[Union[int, str]] = None) -> logging.Logger:
    """
    Configure and return the package logger.

    level accepts a logging constant or a name such as "DEBUG"; it defaults
    to CORTEX_LOG_LEVEL. Records do not propagate to the root logger, so a
    host that calls logging.basicConfig does not print them twice.
    """
    if level is None:
        level = LOG_LEVEL
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger("cortex")
    logger.setLevel(level)
    logger.propagate = False

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(handler)

    return logger


logger = setup_logging()
