# === FILE: swipe_deck/logger.py ===
"""Logging for **SwipeDeck**.

Every module logs through a child of the ``SwipeDeck`` logger
(``get_logger("registry")`` gives ``SwipeDeck.registry``). Output goes to
stderr, so stdout stays clean for ``swipe-deck list --json``, and optionally to
a rotating file. The CLI calls :func:`configure` with ``--log-level`` /
``--log-file``.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Union

_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_LOGGER_NAME: Final[str] = "SwipeDeck"

_LevelT = Union[int, str]


def configure(*, level: _LevelT = "INFO", log_file: str | Path | None = None) -> logging.Logger:
    """Replaces the handlers of the project logger and sets its level.

    Calling it again swaps handlers instead of stacking them; a previous log
    file is closed.
    """
    lg = logging.getLogger(_LOGGER_NAME)
    lg.setLevel(level)

    for handler in list(lg.handlers):
        lg.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(_FORMAT)
    stderr = logging.StreamHandler(sys.stderr)
    stderr.setFormatter(formatter)
    lg.addHandler(stderr)

    if log_file is not None:
        rotating = RotatingFileHandler(
            filename=str(log_file),
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        rotating.setFormatter(formatter)
        lg.addHandler(rotating)

    lg.propagate = False
    return lg


def get_logger(name: str) -> logging.Logger:
    """Child logger, e.g. ``SwipeDeck.cache``; inherits the project handlers."""
    return logging.getLogger(_LOGGER_NAME).getChild(name)


logger: logging.Logger = configure()

__all__ = ["logger", "configure", "get_logger"]
