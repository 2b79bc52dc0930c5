"""
Logging setup for CLI and plugin mode.
"""

from __future__ import annotations

import sys
from collections.abc import Callable

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)

# loguru level name -> lightningd log level
LIGHTNINGD_LEVELS: dict[str, str] = {
    "TRACE": "debug",
    "DEBUG": "debug",
    "INFO": "info",
    "SUCCESS": "info",
    "WARNING": "unusual",
    "ERROR": "broken",
    "CRITICAL": "broken",
}

LogNotifier = Callable[[str, str], None]


def setup_logging(level: str) -> None:
    logger.remove()

    logger.add(
        sys.stderr,
        format=LOG_FORMAT,
        level=level,
        colorize=True,
    )


def lightningd_level(level_name: str) -> str:
    return LIGHTNINGD_LEVELS.get(level_name, "info")


def setup_plugin_logging(notify: LogNotifier, level: str) -> None:
    """
    Route log records to lightningd as `log` notifications.

    stdout carries the JSON-RPC stream in plugin mode, so the stderr sink is
    removed. Multi-line records (tracebacks) are sent one line per
    notification.
    """
    logger.remove()

    def sink(message) -> None:  # type: ignore[no-untyped-def]
        level_name = lightningd_level(message.record["level"].name)
        for line in str(message).rstrip("\n").splitlines():
            notify(level_name, line)

    logger.add(sink, format="{message}", level=level, colorize=False)
