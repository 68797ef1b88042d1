"""
Provision use case — run the fixed step list against this machine.

This is the top-level orchestrator: it loads the catalog, selects the
steps, runs them through the engine (which aborts at the first failed
step), and persists the outcome to the state file and audit ledger.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from osintvm.adapters.registry import AdapterRegistry, default_registry
from osintvm.core.config.loader import ConfigError, load_catalog, resolve_catalog_path
from osintvm.core.engine.context import ProvisionContext
from osintvm.core.engine.executor import (
    ProvisionReport,
    Step,
    StepReport,
    generate_operation_id,
    run_steps,
    write_audit_entry,
)
from osintvm.core.models.catalog import Catalog
from osintvm.core.observability import log
from osintvm.core.persistence.audit import AuditWriter
from osintvm.core.persistence.environment import environment_path, load_environment
from osintvm.core.persistence.state_file import default_state_path, load_state, save_state
from osintvm.core.services import artifacts, packages, repositories, system, toolchains

logger = logging.getLogger(__name__)


def build_steps() -> list[Step]:
    """The provisioning steps, in the order they must run."""
    return [
        Step("system", "System update", system.bootstrap_system, "System updated."),
        Step("dns", "DNS resolvers", system.configure_dns, "DNS resolvers configured."),
        Step("apt-packages", "Debian packages", system.install_apt_packages, "Debian packages installed."),
        Step("services", "Services", system.configure_services, "Services configured."),
        Step("mongodb", "MongoDB", system.install_mongodb, "MongoDB installed and configured."),
        Step("go-toolchain", "Go toolchain", toolchains.install_go, "Go installed and path updated."),
        Step(
            "gems-snaps",
            "Ruby Gems and Snap packages",
            packages.install_gems_and_snaps,
            "Ruby Gems and Snap packages installed.",
        ),
        Step("pipx-tools", "Pipx tools", packages.install_pipx_tools, "Pipx tools installed."),
        Step("go-tools", "Go tools", packages.install_go_tools, "Go tools installed."),
        Step(
            "repositories",
            "Git repositories",
            repositories.install_repositories,
            "Git repositories and Python tools installed.",
        ),
        Step("artifacts", "Release artifacts", artifacts.install_artifacts, "Release artifacts downloaded."),
        Step("resources", "Resource repositories", artifacts.clone_resources, "Git repositories cloned."),
        Step("scripts", "Installer scripts", artifacts.run_installer_scripts, "Installer scripts finished."),
    ]


def step_ids() -> list[str]:
    return [s.step_id for s in build_steps()]


def select_steps(
    steps: Sequence[Step],
    only: Sequence[str] | None = None,
    skip: Sequence[str] | None = None,
) -> list[Step]:
    """Filter steps, keeping their order.

    Raises:
        ValueError: If ``only`` or ``skip`` names an unknown step.
    """
    known = {s.step_id for s in steps}
    unknown = sorted({*(only or ()), *(skip or ())} - known)
    if unknown:
        raise ValueError(
            f"Unknown step(s): {', '.join(unknown)}. Valid: {', '.join(s.step_id for s in steps)}"
        )
    selected = [s for s in steps if not only or s.step_id in only]
    return [s for s in selected if s.step_id not in (skip or ())]


@dataclass
class ProvisionResult:
    """Result of a provisioning run."""

    report: ProvisionReport | None = None
    catalog: Catalog | None = None
    catalog_path: Path | None = None
    steps_selected: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.report is not None and self.report.ok

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["catalog_name"] = self.catalog.name if self.catalog else ""
        result["catalog_path"] = str(self.catalog_path) if self.catalog_path else None
        result["steps_selected"] = self.steps_selected
        if self.report:
            result["report"] = self.report.to_dict()
        return result


def narrate_step(step: Step, report: StepReport) -> None:
    """Status line after each step."""
    if report.status == "ok":
        log("SUCCESS", step.done or f"{step.title} done.")
    elif report.status == "skipped":
        if any(r.dry_run for r in report.receipts):
            log("INFO", f"[dry-run] {step.title}: {report.total} action(s) validated.")
        else:
            log("INFO", f"{step.title}: nothing to do.")


def provision(
    catalog_path: Path | None = None,
    dry_run: bool = False,
    only: Sequence[str] | None = None,
    skip: Sequence[str] | None = None,
    update: bool = False,
    mock_mode: bool = False,
    registry: AdapterRegistry | None = None,
    steps: Sequence[Step] | None = None,
    on_step_done: Callable[[Step, StepReport], None] | None = narrate_step,
) -> ProvisionResult:
    """Provision this machine from the catalog.

    Args:
        catalog_path: Optional explicit catalog path.
        dry_run: Validate every action, execute none.
        only: Run only these step ids.
        skip: Leave out these step ids.
        update: Pull existing clones and re-run their dependency install.
        mock_mode: Use mock adapter responses.
        registry: Optional pre-configured adapter registry.
        steps: Optional step list (default: ``build_steps()``).
        on_step_done: Progress callback after each step.

    Returns:
        ProvisionResult. ``result.report.aborted_at`` names the step
        that failed, if any.
    """
    result = ProvisionResult()

    # ── Load catalog ─────────────────────────────────────────────
    try:
        result.catalog_path = resolve_catalog_path(catalog_path)
        catalog = load_catalog(result.catalog_path)
        result.catalog = catalog
    except ConfigError as e:
        result.error = str(e)
        return result

    # ── Select steps ─────────────────────────────────────────────
    try:
        selected = select_steps(steps if steps is not None else build_steps(), only, skip)
    except ValueError as e:
        result.error = str(e)
        return result
    result.steps_selected = [s.step_id for s in selected]

    # ── Context ──────────────────────────────────────────────────
    if registry is None:
        registry = default_registry(mock_mode=mock_mode)

    state_dir = catalog.settings.state_path
    ctx = ProvisionContext(
        catalog=catalog,
        registry=registry,
        operation_id=generate_operation_id(),
        dry_run=dry_run,
        update=update,
        environment=load_environment(environment_path(state_dir)),
    )

    # ── Run ──────────────────────────────────────────────────────
    log("INFO", f"Starting OSINT VM setup ({len(selected)} steps).")
    report = run_steps(selected, ctx, on_step_done=on_step_done)
    result.report = report

    # ── Persist ──────────────────────────────────────────────────
    if not dry_run:
        record_run(report, catalog, default_state_path(state_dir))
    write_audit_entry(
        report,
        AuditWriter(state_dir=state_dir),
        context={"catalog": catalog.name, "only": list(only or ()), "skip": list(skip or ()), "update": update},
    )

    if report.ok:
        if dry_run:
            log("INFO", f"[dry-run] {len(report.receipts)} action(s) validated, nothing executed.")
        else:
            log("SUCCESS", "Setup complete! The system is ready for use.")
    return result


def record_run(report: ProvisionReport, catalog: Catalog, state_path: Path) -> None:
    """Write the run summary and per-step outcome to the state file."""
    state = load_state(state_path)
    state.catalog_name = catalog.name

    op = state.last_operation
    op.operation_id = report.operation_id
    op.started_at = report.started_at
    op.ended_at = report.ended_at
    op.status = report.status
    op.dry_run = report.dry_run
    op.steps_total = report.steps_planned
    op.steps_ran = len(report.steps)
    op.aborted_at = report.aborted_at

    for step in report.steps:
        state.set_step_state(
            step.step_id,
            last_run_at=report.ended_at,
            last_status=step.status,
            actions_total=step.total,
            actions_failed=step.failed,
            last_error=step.first_error,
        )

    save_state(state, state_path)
