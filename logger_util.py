"""Shared ``xpwrangler`` logger.

Modules do ``log = get_logger()``. The starting level comes from
XPWRANGLER_LOG_LEVEL; the persisted log-level setting is applied later
through set_level().
"""
from __future__ import annotations

import logging
import os

LOGGER_NAME = "xpwrangler"

# persisted setting value -> logging level
SETTING_LEVELS = {
    "basic": logging.WARNING,
    "full": logging.INFO,
    "debug": logging.DEBUG,
}


def level_for_setting(value: int | str | None) -> int:
    """Resolve a setting value ("full"), a level name ("DEBUG") or an int."""
    if isinstance(value, int):
        return value
    key = (value or "").strip()
    if key.lower() in SETTING_LEVELS:
        return SETTING_LEVELS[key.lower()]
    level = logging.getLevelName(key.upper())
    return level if isinstance(level, int) else logging.INFO


def get_logger() -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", "%H:%M:%S")
        )
        logger.addHandler(handler)
        logger.setLevel(level_for_setting(os.environ.get("XPWRANGLER_LOG_LEVEL", "INFO")))
        logger.propagate = False
    return logger


def set_level(level: int | str) -> None:
    level = level_for_setting(level)
    logger = get_logger()
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)
