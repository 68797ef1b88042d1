"""
Adapter base — the protocol contract between steps and tools.

This defines the abstract interface that every adapter must implement.
Provisioning steps only talk to adapters through this protocol (via the
registry), never directly to apt, git, pip and friends.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Literal

from pydantic import BaseModel, Field

from osintvm.core.models.action import Action, Receipt


class ExecutionContext(BaseModel):
    """Everything an adapter needs to execute an action.

    This is the adapter's view of the world: the action to perform,
    the directory to run in, and the execution knobs from the catalog
    settings.
    """

    action: Action
    cwd: str = "."
    dry_run: bool = False
    sudo: Literal["auto", "always", "never"] = "auto"
    timeout: int | None = None
    env: dict[str, str] = Field(default_factory=dict)
    params: dict[str, Any] = Field(default_factory=dict)

    @property
    def working_dir(self) -> str:
        """Resolved working directory for the action."""
        return self.action.params.get("cwd") or self.cwd


class Adapter(ABC):
    """Abstract base class for all adapters.

    Adapters perform external side effects and return receipts.
    They NEVER raise exceptions — failures are captured in the Receipt.

    To create a new adapter:
        1. Subclass Adapter
        2. Implement name, is_available, validate, execute
        3. Register it in the AdapterRegistry (see ``default_registry``)
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'shell', 'apt', 'git')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this adapter's underlying tool is available.

        For example, the snap adapter checks if the snap CLI exists.
        Should be fast and never raise.
        """

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Validate that the action can be executed.

        Returns:
            (is_valid, error_message). error_message is empty if valid.
        """

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Execute the action and return a receipt.

        MUST never raise exceptions. All failures are captured
        in the Receipt with status='failed'.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


def require_operation(
    context: ExecutionContext,
    valid_ops: set[str],
) -> tuple[bool, str]:
    """Common ``operation`` param check shared by multi-operation adapters."""
    operation = context.action.params.get("operation", "")
    if not operation:
        return False, "Missing required param: 'operation'"
    if operation not in valid_ops:
        return False, f"Unknown operation '{operation}'. Valid: {', '.join(sorted(valid_ops))}"
    return True, ""
