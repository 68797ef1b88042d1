"""
Pipx adapter — Python command-line applications.

Each application gets its own pipx-managed environment; ``ensurepath``
adds pipx's bin directory to the user's PATH.
"""

from __future__ import annotations

from collections.abc import Sequence

from osintvm.adapters.base import ExecutionContext
from osintvm.adapters.packages.base import PackageManagerAdapter


class PipxAdapter(PackageManagerAdapter):
    binary = "pipx"
    extra_operations = frozenset({"ensurepath"})

    def install_argv(self, packages: Sequence[str], ctx: ExecutionContext) -> list[str]:
        return ["pipx", "install", *packages]

    def operation_argv(self, operation: str, ctx: ExecutionContext) -> list[str]:
        return ["pipx", "ensurepath"]
