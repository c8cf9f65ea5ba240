"""Logger construction.

Components never configure logging globally; they take a ``logger``
argument and fall back to ``logging.getLogger(__name__)``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TextIO

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_LEVEL_ENV = "NOTESANKIFY_LOG_LEVEL"


def default_level() -> int:
    name = os.environ.get(LOG_LEVEL_ENV, "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def build_logger(
    name: str = "notesankify",
    level: int | None = None,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Get a logger writing to ``stream`` at ``level``.

    Args:
        name: Logger name
        level: Minimum level; defaults to $NOTESANKIFY_LOG_LEVEL or INFO
        stream: Output sink; defaults to stdout

    Returns:
        Configured logger. Calling again with the same name replaces the
        previous handler instead of stacking a second one.
    """
    logger = logging.getLogger(name)
    for h in list(logger.handlers):
        logger.removeHandler(h)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level if level is not None else default_level())
    logger.propagate = False
    return logger
