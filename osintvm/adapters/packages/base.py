"""
Package manager base — shared shape of apt, gem, snap, pipx and go.

Each package manager is a binary that installs a batch of named
packages in one call. Subclasses describe the binary, whether it needs
root, and how to spell "install these" for that tool.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from collections.abc import Sequence

from osintvm.adapters.base import Adapter, ExecutionContext, require_operation
from osintvm.adapters.shell.process import binary_available, run_process
from osintvm.core.models.action import Receipt

logger = logging.getLogger(__name__)


class PackageManagerAdapter(Adapter):
    """Batch installer over a single package-manager binary.

    Action params:
        operation (str): 'install' plus any subclass-specific operations.
        packages (list[str]): Package names (for 'install').
    """

    binary: str = ""
    privileged: bool = False
    extra_operations: frozenset[str] = frozenset()

    @property
    def name(self) -> str:
        return self.binary

    def is_available(self) -> bool:
        return binary_available(self.binary)

    @abstractmethod
    def install_argv(self, packages: Sequence[str], ctx: ExecutionContext) -> list[str]:
        """Command installing ``packages`` in one call."""

    def operation_argv(self, operation: str, ctx: ExecutionContext) -> list[str] | None:
        """Command for one of ``extra_operations``; None when there is none."""
        return None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        ok, msg = require_operation(context, {"install", *self.extra_operations})
        if not ok:
            return ok, msg
        if context.action.params["operation"] == "install":
            packages = context.action.params.get("packages")
            if not packages:
                return False, "Missing required param: 'packages' for install operation"
            if not isinstance(packages, list):
                return False, "Param 'packages' must be a list"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.action.params["operation"]
        try:
            if operation == "install":
                packages = list(context.action.params["packages"])
                argv = self.install_argv(packages, context)
                metadata = {"packages": packages, "count": len(packages)}
            else:
                argv = self.operation_argv(operation, context)
                metadata = {"operation": operation}
                if argv is None:
                    return Receipt.failure(
                        adapter=self.name,
                        action_id=context.action.id,
                        error=f"{self.name} has no command for operation '{operation}'",
                    )
        except Exception as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"{self.name} error: {e}",
            )

        return run_process(
            context,
            self.name,
            argv,
            privileged=self.privileged,
            metadata=metadata,
        )
