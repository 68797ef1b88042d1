"""
Status log — the provisioner's four user-facing levels.

``log(level, message)`` is what steps use to narrate a run:

    INFO     progress ("Installing Go tools...")
    SUCCESS  a step finished
    WARN     something was skipped and the run continues
    ERROR    the run cannot continue — logs, then exits with status 1

Records go through the ``osintvm`` logger, so they pick up whatever
handlers ``setup_logging`` installed.
"""

from __future__ import annotations

import logging
from typing import Literal

from osintvm.core.observability.logging_config import SUCCESS

Level = Literal["INFO", "SUCCESS", "WARN", "ERROR"]

LEVELS: dict[str, int] = {
    "INFO": logging.INFO,
    "SUCCESS": SUCCESS,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}

status_logger = logging.getLogger("osintvm")


def log(level: Level | str, message: str) -> None:
    """Write a level-tagged status line.

    Raises:
        SystemExit: with code 1, after logging, when ``level`` is ERROR.
        ValueError: for a level outside INFO/SUCCESS/WARN/ERROR.
    """
    key = level.upper()
    if key not in LEVELS:
        raise ValueError(f"Unknown log level {level!r}. Valid: {', '.join(LEVELS)}")

    status_logger.log(LEVELS[key], message)

    if key == "ERROR":
        raise SystemExit(1)
