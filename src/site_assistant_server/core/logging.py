"""
Logging Setup

Configures the application's named loggers (``assistant.*`` and
``newsletter.*``) with a single stdout handler. Called once from the
application factory; repeated calls are no-ops.
"""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_ROOT_LOGGERS = ("assistant", "newsletter")


def configure_logging(level: str = "INFO") -> None:
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO

    for name in _ROOT_LOGGERS:
        logger = logging.getLogger(name)
        logger.setLevel(resolved)

        # Avoid duplicate handlers when create_app() runs more than once
        if logger.handlers:
            continue

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False
