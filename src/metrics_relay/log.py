"""
Logging setup (loguru).

Console output starts at WARNING and each ``-v`` lowers the threshold one
step. An optional file sink records at the configured ``log_level``.
"""

from __future__ import annotations

import sys
from typing import Optional

from loguru import logger

_CONSOLE_LEVELS = ["WARNING", "INFO", "DEBUG", "TRACE"]

_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{extra[component]: <14} | {message}"
)


def console_level(verbosity: int) -> str:
    return _CONSOLE_LEVELS[min(max(verbosity, 0), len(_CONSOLE_LEVELS) - 1)]


def bootstrap() -> None:
    """Bare console logger used before the config is loaded."""
    logger.remove()
    logger.configure(extra={"component": "relay"})
    logger.add(sys.stderr, level="INFO", format=_FORMAT)


def configure_logging(
    level: str = "info",
    log_file: Optional[str] = None,
    verbosity: int = 0,
) -> None:
    """Replace bootstrap handlers with the configured console and file sinks."""
    logger.remove()
    logger.configure(extra={"component": "relay"})
    logger.add(sys.stderr, level=console_level(verbosity), format=_FORMAT)
    if log_file:
        logger.add(
            log_file,
            level=level.upper(),
            format=_FORMAT,
            rotation="10 MB",
            retention=5,
            enqueue=True,
        )
    logger.debug(f"Logging configured: console={console_level(verbosity)} file={log_file}")
