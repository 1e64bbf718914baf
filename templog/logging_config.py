"""Logging setup for the templog service.

Modules log through ``logging.getLogger(__name__)``; this only attaches a
single stream handler to the package logger so messages reach stderr.
"""
from __future__ import annotations

import logging

_LOGGER_NAME = "templog"
_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)

    return logger
