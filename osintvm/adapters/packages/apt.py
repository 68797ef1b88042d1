"""
Apt adapter — Debian system packages.

Runs apt-get non-interactively as root: index refresh, full upgrade,
and batch installs.
"""

from __future__ import annotations

from collections.abc import Sequence

from osintvm.adapters.base import ExecutionContext
from osintvm.adapters.packages.base import PackageManagerAdapter

# Keeps apt-get and debconf from stopping on prompts
_NONINTERACTIVE = {"DEBIAN_FRONTEND": "noninteractive"}


class AptAdapter(PackageManagerAdapter):
    """System package operations through apt-get.

    Action params:
        operation (str): One of 'install', 'update', 'upgrade'.
        packages (list[str]): Package names (for 'install').
    """

    binary = "apt-get"
    privileged = True
    extra_operations = frozenset({"update", "upgrade"})

    @property
    def name(self) -> str:
        return "apt"

    def install_argv(self, packages: Sequence[str], ctx: ExecutionContext) -> list[str]:
        return self._env_prefix() + ["apt-get", "install", "-y", *packages]

    def operation_argv(self, operation: str, ctx: ExecutionContext) -> list[str]:
        if operation == "update":
            return self._env_prefix() + ["apt-get", "update"]
        return self._env_prefix() + ["apt-get", "upgrade", "-y"]

    @staticmethod
    def _env_prefix() -> list[str]:
        # sudo resets the environment, so the variable rides on the argv
        return ["env", *(f"{k}={v}" for k, v in _NONINTERACTIVE.items())]
