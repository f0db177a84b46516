"""Tests for logging helpers."""

from __future__ import annotations

import logging

import pytest

from playwright_repl.logging import TRACE, VERBOSE, get_logger, level_for_verbosity


@pytest.mark.parametrize(
    ("verbose", "level"),
    [
        (-1, logging.ERROR),
        (0, logging.ERROR),
        (1, logging.WARNING),
        (2, logging.INFO),
        (3, VERBOSE),
        (4, TRACE),
        (9, TRACE),
    ],
)
def test_level_for_verbosity(verbose: int, level: int) -> None:
    assert level_for_verbosity(verbose) == level


def test_child_loggers() -> None:
    """Named loggers hang off the package logger."""
    assert get_logger().name == "playwright_repl"
    assert get_logger("transport").name == "playwright_repl.transport"
    assert logging.getLevelName(TRACE) == "TRACE"
