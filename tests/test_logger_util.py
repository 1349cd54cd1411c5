from __future__ import annotations

import logging

import pytest

from logger_util import get_logger, level_for_setting, set_level


@pytest.mark.parametrize(
    "value, expected",
    [
        ("basic", logging.WARNING),
        ("full", logging.INFO),
        ("Debug", logging.DEBUG),
        ("ERROR", logging.ERROR),
        (logging.CRITICAL, logging.CRITICAL),
        ("chatty", logging.INFO),
        (None, logging.INFO),
    ],
)
def test_level_for_setting(value, expected: int) -> None:
    assert level_for_setting(value) == expected


def test_shared_logger_has_one_handler() -> None:
    log = get_logger()
    assert get_logger() is log
    assert len(log.handlers) == 1
    assert log.propagate is False


def test_set_level_reaches_handlers() -> None:
    log = get_logger()
    old = log.level
    try:
        set_level("debug")
        assert log.level == logging.DEBUG
        assert all(h.level == logging.DEBUG for h in log.handlers)
    finally:
        set_level(old)
