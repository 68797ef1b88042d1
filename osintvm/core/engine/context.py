"""
Provisioning context — what every step gets to work with.

Holds the loaded catalog, the adapter registry and the run options, and
turns a step's "do this" into an Action dispatched through the
registry. Receipts are appended to the step's report as they come back,
so a step only has to check ``receipt.failed`` and return.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any

from osintvm.adapters.registry import AdapterRegistry
from osintvm.core.engine.executor import StepReport, generate_operation_id
from osintvm.core.models.action import Action, Receipt
from osintvm.core.models.catalog import Catalog, Settings
from osintvm.core.models.state import EnvironmentSettings


@dataclass
class ProvisionContext:
    """Shared state for one provisioning run."""

    catalog: Catalog
    registry: AdapterRegistry
    operation_id: str = field(default_factory=generate_operation_id)
    dry_run: bool = False
    update: bool = False
    environment: EnvironmentSettings = field(default_factory=EnvironmentSettings)
    _seq: int = field(default=0, repr=False)

    @property
    def settings(self) -> Settings:
        return self.catalog.settings

    def available(self, adapter: str) -> bool:
        """Whether the tool behind ``adapter`` is installed."""
        return self.registry.is_available(adapter)

    def action(self, report: StepReport, adapter: str, name: str, **params: Any) -> Action:
        self._seq += 1
        return Action(
            id=f"{report.step_id}:{self._seq}",
            name=name,
            adapter=adapter,
            params=params,
            for_step=report.step_id,
        )

    def run(self, report: StepReport, adapter: str, name: str, **params: Any) -> Receipt:
        """Dispatch one action and record its receipt on ``report``."""
        action = self.action(report, adapter, name, **params)
        receipt = self.registry.execute_action(
            action,
            dry_run=self.dry_run,
            sudo=self.settings.sudo,
            timeout=self.settings.command_timeout,
            env=self.command_env(),
        )
        return report.add(receipt)

    def skip(self, report: StepReport, adapter: str, name: str, reason: str) -> Receipt:
        """Record an action the step decided not to run."""
        action = self.action(report, adapter, name)
        return report.add(Receipt.skip(adapter=adapter, action_id=action.id, reason=reason))

    def command_env(self) -> dict[str, str]:
        """Environment overlay built from the toolchain record."""
        if not (self.environment.variables or self.environment.path_entries):
            return {}
        return self.environment.subprocess_env(dict(os.environ))
