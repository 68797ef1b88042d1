"""Gem adapter — Ruby gems installed for the invoking user."""

from __future__ import annotations

from collections.abc import Sequence

from osintvm.adapters.base import ExecutionContext
from osintvm.adapters.packages.base import PackageManagerAdapter


class GemAdapter(PackageManagerAdapter):
    binary = "gem"

    def install_argv(self, packages: Sequence[str], ctx: ExecutionContext) -> list[str]:
        return ["gem", "install", *packages]
