"""
Logging configuration — central setup for all entrypoints.

Called once at startup by main.py.  Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Levels are resolved in precedence order:
    CLI flag  >  OSINTVM_LOG_LEVEL env var  >  INFO (default)

Console output is split: records below ERROR go to stdout, ERROR and
above go to stderr. Optional file output via OSINTVM_LOG_FILE /
OSINTVM_LOG_FILE_LEVEL env vars.
"""

from __future__ import annotations

import logging
import sys

import click

# ── Custom level ────────────────────────────────────────────────

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

# ── Format strings ──────────────────────────────────────────────

# INFO/WARNING level: status lines, "[LEVEL] message"
_FMT_STATUS = "[%(levelname)s] %(message)s"

# DEBUG level: full diagnostic with file:line
_FMT_DEBUG = "%(asctime)s %(levelname)-7s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_DEBUG = "%H:%M:%S"

# File output: always full detail
_FMT_FILE = "%(asctime)s %(levelname)-7s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

# Console tag colours, as in the interactive status lines
LEVEL_COLORS = {
    "DEBUG": "white",
    "INFO": "blue",
    "SUCCESS": "green",
    "WARN": "yellow",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red",
}

# Third-party loggers that are noisy at INFO/DEBUG
_NOISY_LOGGERS = ("urllib3", "charset_normalizer")


class StatusFormatter(logging.Formatter):
    """``[LEVEL] message`` with a coloured, bold level tag.

    WARNING is shown as ``WARN`` to match the provisioner's four levels.
    """

    def __init__(self, fmt: str = _FMT_STATUS, color: bool = True):
        super().__init__(fmt)
        self._color = color

    def format(self, record: logging.LogRecord) -> str:
        label = "WARN" if record.levelname == "WARNING" else record.levelname
        if self._color:
            label = click.style(label, fg=LEVEL_COLORS.get(label, "white"), bold=True)
        original = record.levelname
        record.levelname = label
        try:
            return super().format(record)
        finally:
            record.levelname = original


class _BelowLevel(logging.Filter):
    """Pass records strictly below ``level``."""

    def __init__(self, level: int):
        super().__init__()
        self._level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self._level


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
    color: bool | None = None,
) -> None:
    """Configure Python logging for the entire process.

    Args:
        level: Log level name (DEBUG, INFO, SUCCESS, WARNING, ERROR).
        log_file: Optional path to a log file.
        log_file_level: Optional separate level for the log file.
            Defaults to the same as ``level``.
        quiet_third_party: If True, keep noisy third-party loggers at WARNING
            unless we're at DEBUG level.
        color: Force colour on/off. Default: colour when stdout is a TTY.
    """
    numeric_level = _parse_level(level)
    if color is None:
        color = sys.stdout.isatty()

    if numeric_level <= logging.DEBUG:
        formatter: logging.Formatter = logging.Formatter(_FMT_DEBUG, datefmt=_DATEFMT_DEBUG)
    else:
        formatter = StatusFormatter(color=color)

    # ── Console handlers (stdout below ERROR, stderr from ERROR) ──
    out = logging.StreamHandler(sys.stdout)
    out.setLevel(numeric_level)
    out.addFilter(_BelowLevel(logging.ERROR))
    out.setFormatter(formatter)

    err = logging.StreamHandler(sys.stderr)
    err.setLevel(max(numeric_level, logging.ERROR))
    err.setFormatter(formatter)

    # ── Root logger ─────────────────────────────────────────────
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(out)
    root.addHandler(err)

    # Effective root level = minimum of console and file levels
    effective_level = numeric_level

    # ── File handler (optional) ─────────────────────────────────
    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else numeric_level
        effective_level = min(effective_level, file_level)

        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)

    root.setLevel(effective_level)
    # Let the package logger follow the root level again (JSON output raises it)
    logging.getLogger("osintvm").setLevel(logging.NOTSET)

    # ── Third-party noise control ───────────────────────────────
    if quiet_third_party and numeric_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    # Don't propagate exceptions from logging itself
    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.INFO
    name = level.upper()
    if name == "WARN":
        return logging.WARNING
    numeric = logging.getLevelName(name)
    if not isinstance(numeric, int):
        return logging.INFO
    return numeric
