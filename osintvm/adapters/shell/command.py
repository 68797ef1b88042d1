"""
Shell command adapter — execute arbitrary commands.

This is the most fundamental adapter: it runs commands and captures
their output. Everything without a dedicated adapter (resolvconf, gpg,
tar into system paths, vendor installer scripts) goes through here.
"""

from __future__ import annotations

import logging
from pathlib import Path

from osintvm.adapters.base import Adapter, ExecutionContext
from osintvm.adapters.shell.process import binary_available, run_process
from osintvm.core.models.action import Receipt

logger = logging.getLogger(__name__)


class ShellCommandAdapter(Adapter):
    """Execute commands and capture output.

    Action params:
        argv (list[str]): Command as an argument list (preferred).
        command (str): Command string run through ``sh -c`` (fallback).
        privileged (bool): Escalate with sudo (default: False).
        input (str): Text piped to stdin.
        cwd (str): Override working directory.
        env (dict[str, str]): Extra environment variables.
    """

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        return binary_available("sh")

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        argv = context.action.params.get("argv")
        command = context.action.params.get("command", "")
        if not argv and not command:
            return False, "Missing required param: 'argv' or 'command'"
        if argv is not None and not isinstance(argv, list):
            return False, "Param 'argv' must be a list of strings"

        cwd = context.action.params.get("cwd")
        if cwd and not context.dry_run and not Path(cwd).is_dir():
            return False, f"Working directory does not exist: {cwd}"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        params = context.action.params
        argv = params.get("argv") or ["sh", "-c", params["command"]]

        return run_process(
            context,
            self.name,
            [str(a) for a in argv],
            privileged=bool(params.get("privileged", False)),
            input_text=params.get("input"),
            env=params.get("env"),
        )
