"""
Go adapter — ``go install`` of command-line tools.

``go install pkg@version`` only accepts several packages in one call
when they come from the same module, so the provisioner sends one
action per tool.
"""

from __future__ import annotations

from collections.abc import Sequence

from osintvm.adapters.base import ExecutionContext
from osintvm.adapters.packages.base import PackageManagerAdapter


class GoAdapter(PackageManagerAdapter):
    """Go module installs.

    Action params:
        packages (list[str]): Module specs, e.g. ``github.com/x/y@latest``.
        go (str): Path to the go binary (default: ``go`` on PATH).
        verbose (bool): Pass ``-v``.
    """

    binary = "go"

    def install_argv(self, packages: Sequence[str], ctx: ExecutionContext) -> list[str]:
        go = ctx.action.params.get("go") or "go"
        argv = [go, "install"]
        if ctx.action.params.get("verbose"):
            argv.append("-v")
        return [*argv, *packages]
