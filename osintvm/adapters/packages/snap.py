"""
Snap adapter — sandboxed application packages.

snap accepts mode flags like ``--classic`` only when a single snap is
named, so a classic install is one action per snap while strictly
confined snaps still go in one batch.
"""

from __future__ import annotations

from collections.abc import Sequence

from osintvm.adapters.base import ExecutionContext
from osintvm.adapters.packages.base import PackageManagerAdapter


class SnapAdapter(PackageManagerAdapter):
    """Snap installs.

    Action params:
        packages (list[str]): Snap names; exactly one when ``classic``.
        classic (bool): Install with classic confinement.
    """

    binary = "snap"
    privileged = True

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        ok, msg = super().validate(context)
        if not ok:
            return ok, msg
        params = context.action.params
        if params.get("classic") and len(params["packages"]) != 1:
            return False, "Classic snaps must be installed one per action"
        return True, ""

    def install_argv(self, packages: Sequence[str], ctx: ExecutionContext) -> list[str]:
        argv = ["snap", "install"]
        if ctx.action.params.get("classic"):
            argv.append("--classic")
        return [*argv, *packages]
