from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


LOGGER_NAME = "skillsync"

_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def parse_level(value: str | None, default: int = logging.WARNING) -> int:
    if not value:
        return default
    return _LEVELS.get(value.strip().lower(), default)


def configure_logging(level: int, console: Console) -> logging.Logger:
    """Attach a single rich handler to the package logger."""
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_skillsync", False):
            logger.removeHandler(handler)
    handler = RichHandler(
        console=console,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=level <= logging.DEBUG,
    )
    handler._skillsync = True  # type: ignore[attr-defined]
    handler.setLevel(level)
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger
