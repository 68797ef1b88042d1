"""Observability — logging setup and the status log."""

from osintvm.core.observability.console import log
from osintvm.core.observability.logging_config import SUCCESS, setup_logging

__all__ = ["SUCCESS", "log", "setup_logging"]
