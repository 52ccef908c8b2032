"""Logging setup for the command line.

Library code only creates module loggers (``logging.getLogger(__name__)``)
and accepts an explicit logger where callers want to redirect output. The
CLI configures the ``mirrordocs`` logger once with a stderr handler.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass

_HANDLER_TAG_ATTR = "_mirrordocs_handler"

_LEVEL_MAP: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration parameters.

    Attributes:
        level: Logging level name ("DEBUG", "INFO", ...).
        console_fmt: Format string for console output.
    """

    level: str = "INFO"
    console_fmt: str = "%(levelname)s | %(message)s"


def parse_level(level: str | int) -> int:
    """Map a level name (case insensitive) or number to a logging level.

    Raises:
        ValueError: If the name is not a known level.
    """
    if isinstance(level, int):
        return level
    try:
        return _LEVEL_MAP[level.strip().upper()]
    except KeyError:
        raise ValueError(f"Unknown log level: {level}") from None


def configure_logging(cfg: LoggingConfig | None = None) -> logging.Logger:
    """Configure the ``mirrordocs`` logger to write to stderr.

    Calling it again replaces the handler installed by a previous call
    instead of adding a second one.

    Returns:
        The configured ``mirrordocs`` logger.
    """
    cfg = cfg or LoggingConfig()
    logger = logging.getLogger("mirrordocs")
    logger.setLevel(parse_level(cfg.level))

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_TAG_ATTR, False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(cfg.console_fmt))
    setattr(handler, _HANDLER_TAG_ATTR, True)
    logger.addHandler(handler)
    return logger


__all__ = ["LoggingConfig", "configure_logging", "parse_level"]
