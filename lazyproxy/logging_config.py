"""Shared logging configuration helpers."""

from __future__ import annotations

import logging
import sys
from logging import Handler
from typing import List

from lazyproxy.config import Config

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_PACKAGE_LOGGER = "lazyproxy"


def configure_logging(config: Config) -> logging.Logger:
    """Configure the package logger outputs from config."""
    log_level_name = config.logging.log_level
    log_level = getattr(logging, log_level_name, logging.WARNING)

    handlers: List[Handler] = []
    if config.logging.log_file is not None:
        log_file = config.logging.log_file.expanduser()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler: Handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(file_handler)

    if config.logging.debug_mode:
        stderr_handler: Handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setLevel(log_level)
        stderr_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(stderr_handler)

    logger = logging.getLogger(_PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(log_level)
    logger.info("Logging initialized level=%s handlers=%d", log_level_name, len(handlers))
    return logger
