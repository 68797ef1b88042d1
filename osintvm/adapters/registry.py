"""
Adapter registry — central dispatch for all adapter operations.

The registry is the single point of adapter management. It handles
registration, lookup, mock mode, and action execution. Steps never
talk to adapters directly — always through the registry.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from osintvm.adapters.base import Adapter, ExecutionContext
from osintvm.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Central registry and dispatcher for adapters.

    Features:
        - Register/unregister adapters by name
        - Mock mode: swap all adapters for a mock that always succeeds
        - Execute actions through the appropriate adapter
        - Query adapter availability
    """

    def __init__(self, mock_mode: bool = False):
        self._adapters: dict[str, Adapter] = {}
        self._mock_mode = mock_mode
        self._mock_adapter: Adapter | None = None

    @property
    def mock_mode(self) -> bool:
        return self._mock_mode

    def set_mock_mode(self, enabled: bool, mock_adapter: Adapter | None = None) -> None:
        """Enable or disable mock mode.

        Args:
            enabled: Whether to use mock mode.
            mock_adapter: Optional custom mock adapter. If None, uses default.
        """
        self._mock_mode = enabled
        self._mock_adapter = mock_adapter

    def register(self, adapter: Adapter) -> None:
        """Register an adapter, replacing any adapter with the same name."""
        name = adapter.name
        if name in self._adapters:
            logger.warning("Overwriting existing adapter: %s", name)
        self._adapters[name] = adapter
        logger.debug("Registered adapter: %s", name)

    def unregister(self, name: str) -> None:
        """Remove an adapter from the registry."""
        self._adapters.pop(name, None)

    def get(self, name: str) -> Adapter | None:
        """Look up an adapter by name."""
        return self._adapters.get(name)

    def list_adapters(self) -> list[str]:
        """List all registered adapter names."""
        return list(self._adapters.keys())

    def is_available(self, name: str) -> bool:
        """Whether the named adapter is registered and its tool is present."""
        if self._mock_mode:
            return True
        adapter = self._adapters.get(name)
        if adapter is None:
            return False
        try:
            return adapter.is_available()
        except Exception:
            return False

    def adapter_status(self) -> dict[str, dict[str, Any]]:
        """Get availability status of all registered adapters."""
        status = {}
        for name, adapter in self._adapters.items():
            try:
                available = adapter.is_available()
            except Exception:
                available = False
            status[name] = {
                "name": name,
                "available": available,
                "type": adapter.__class__.__name__,
            }
        return status

    def execute_action(
        self,
        action: Action,
        cwd: str = ".",
        dry_run: bool = False,
        sudo: str = "auto",
        timeout: int | None = None,
        env: dict[str, str] | None = None,
    ) -> Receipt:
        """Execute an action through the appropriate adapter.

        This is the main dispatch method. It:
        1. Resolves the adapter (or mock)
        2. Builds the execution context
        3. Validates the action
        4. Executes (or dry-runs)
        5. Returns a Receipt (never raises)

        Args:
            action: The action to execute.
            cwd: Default working directory.
            dry_run: If True, validate but don't execute.
            sudo: Privilege escalation mode for privileged commands.
            timeout: Per-command timeout in seconds (None = no limit).
            env: Extra environment variables for spawned commands.

        Returns:
            Receipt with execution results.
        """
        start_time = time.monotonic()

        context = ExecutionContext(
            action=action,
            cwd=cwd,
            dry_run=dry_run,
            sudo=sudo,
            timeout=timeout,
            env=env or {},
            params=action.params,
        )

        # Resolve adapter
        adapter: Adapter | None = None
        if self._mock_mode and self._mock_adapter:
            adapter = self._mock_adapter
        elif self._mock_mode:
            # Default mock behavior: return success
            return Receipt.success(
                adapter=action.adapter,
                action_id=action.id,
                output=f"[mock] {action.adapter}:{action.id} executed",
                metadata={"mock": True, "dry_run": dry_run},
            )
        else:
            adapter = self._adapters.get(action.adapter)

        if adapter is None:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"No adapter registered for '{action.adapter}'",
            )

        # Validate
        try:
            is_valid, error_msg = adapter.validate(context)
            if not is_valid:
                return Receipt.failure(
                    adapter=action.adapter,
                    action_id=action.id,
                    error=f"Validation failed: {error_msg}",
                )
        except Exception as e:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Validation error: {e}",
            )

        # Dry run: validated but not executed
        if dry_run:
            return Receipt.skip(
                adapter=action.adapter,
                action_id=action.id,
                reason=f"[dry-run] Would execute {action.adapter}:{action.label}",
                metadata={"dry_run": True},
            )

        # Execute
        try:
            receipt = adapter.execute(context)
        except Exception as e:
            # Adapters should never raise, but defense in depth
            logger.error("Adapter %s raised during execution: %s", action.adapter, e)
            receipt = Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Unexpected error: {e}",
            )

        # Add timing
        if not receipt.duration_ms:
            receipt.duration_ms = int((time.monotonic() - start_time) * 1000)

        return receipt


def default_registry(mock_mode: bool = False) -> AdapterRegistry:
    """Build a registry with every production adapter registered."""
    from osintvm.adapters.languages.python import PythonAdapter
    from osintvm.adapters.network.download import DownloadAdapter
    from osintvm.adapters.packages.apt import AptAdapter
    from osintvm.adapters.packages.gem import GemAdapter
    from osintvm.adapters.packages.golang import GoAdapter
    from osintvm.adapters.packages.pipx import PipxAdapter
    from osintvm.adapters.packages.snap import SnapAdapter
    from osintvm.adapters.shell.command import ShellCommandAdapter
    from osintvm.adapters.shell.filesystem import FilesystemAdapter
    from osintvm.adapters.system.systemd import SystemdAdapter
    from osintvm.adapters.vcs.git import GitAdapter

    registry = AdapterRegistry(mock_mode=mock_mode)
    for adapter in (
        ShellCommandAdapter(),
        FilesystemAdapter(),
        DownloadAdapter(),
        GitAdapter(),
        PythonAdapter(),
        AptAdapter(),
        GemAdapter(),
        SnapAdapter(),
        PipxAdapter(),
        GoAdapter(),
        SystemdAdapter(),
    ):
        registry.register(adapter)
    return registry
