"""
Engine executor — the central orchestration loop.

Runs provisioning steps in their fixed order and makes the fail-fast
policy explicit: after every step the executor looks at the step's
receipts and decides whether to continue or abort. A failed step stops
the run; skipped and successful steps let it continue. Nothing is
rolled back.

Flow:
    steps → run step → collect receipts → decide (continue | abort) → report
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from osintvm.core.models.action import Receipt
from osintvm.core.persistence.audit import AuditEntry, AuditWriter

if TYPE_CHECKING:
    from osintvm.core.engine.context import ProvisionContext

logger = logging.getLogger(__name__)


@dataclass
class StepReport:
    """Receipts collected while running one step."""

    step_id: str
    title: str = ""
    receipts: list[Receipt] = field(default_factory=list)
    duration_ms: int = 0

    def add(self, receipt: Receipt) -> Receipt:
        self.receipts.append(receipt)
        return receipt

    @property
    def total(self) -> int:
        return len(self.receipts)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.receipts if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.receipts if r.failed)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.receipts if r.skipped)

    @property
    def status(self) -> str:
        if self.failed:
            return "failed"
        if self.succeeded == 0:
            return "skipped"
        return "ok"

    @property
    def first_error(self) -> str | None:
        for r in self.receipts:
            if r.failed:
                return r.error
        return None

    def to_dict(self) -> dict:
        return {
            "step_id": self.step_id,
            "title": self.title,
            "status": self.status,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "duration_ms": self.duration_ms,
            "receipts": [r.model_dump(mode="json") for r in self.receipts],
        }


StepFunc = Callable[["ProvisionContext", StepReport], None]


@dataclass(frozen=True)
class Step:
    """A single provisioning step.

    ``run`` appends receipts to the report it is given and returns as
    soon as one of them fails. ``done`` is the line logged when the
    step succeeds.
    """

    step_id: str
    title: str
    run: StepFunc
    done: str = ""


@dataclass
class ProvisionReport:
    """Result of running the step list."""

    operation_id: str = ""
    dry_run: bool = False
    started_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    ended_at: str = ""
    steps: list[StepReport] = field(default_factory=list)
    aborted_at: str | None = None
    steps_planned: int = 0

    @property
    def receipts(self) -> list[Receipt]:
        return [r for s in self.steps for r in s.receipts]

    @property
    def status(self) -> str:
        return "failed" if self.aborted_at else "ok"

    @property
    def ok(self) -> bool:
        return self.aborted_at is None

    @property
    def errors(self) -> list[str]:
        return [r.error for r in self.receipts if r.failed and r.error]

    def step(self, step_id: str) -> StepReport | None:
        for s in self.steps:
            if s.step_id == step_id:
                return s
        return None

    def to_dict(self) -> dict:
        receipts = self.receipts
        return {
            "operation_id": self.operation_id,
            "status": self.status,
            "dry_run": self.dry_run,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "aborted_at": self.aborted_at,
            "steps_planned": self.steps_planned,
            "steps_run": len(self.steps),
            "actions": {
                "total": len(receipts),
                "succeeded": sum(1 for r in receipts if r.ok),
                "skipped": sum(1 for r in receipts if r.skipped),
                "failed": sum(1 for r in receipts if r.failed),
            },
            "steps": [s.to_dict() for s in self.steps],
        }


def run_steps(
    steps: Sequence[Step],
    ctx: ProvisionContext,
    on_step_done: Callable[[Step, StepReport], None] | None = None,
) -> ProvisionReport:
    """Run steps in order; stop at the first failed step.

    Args:
        steps: Steps in execution order.
        ctx: Shared provisioning context.
        on_step_done: Optional callback after each step (for progress output).

    Returns:
        ProvisionReport. ``aborted_at`` names the failed step, if any;
        steps after it are absent from the report.
    """
    report = ProvisionReport(
        operation_id=ctx.operation_id,
        dry_run=ctx.dry_run,
        steps_planned=len(steps),
    )

    for step in steps:
        step_report = StepReport(step_id=step.step_id, title=step.title)
        start = time.monotonic()
        logger.debug("Running step %s", step.step_id)

        try:
            step.run(ctx, step_report)
        except Exception as e:
            # Steps report through receipts; an exception still stops the run.
            logger.exception("Step %s raised", step.step_id)
            step_report.add(
                Receipt.failure(
                    adapter="engine",
                    action_id=f"{ctx.operation_id}:{step.step_id}:exception",
                    error=f"Unexpected error in step {step.step_id}: {e}",
                )
            )

        step_report.duration_ms = int((time.monotonic() - start) * 1000)
        report.steps.append(step_report)
        if on_step_done is not None:
            on_step_done(step, step_report)

        if step_report.status == "failed":
            report.aborted_at = step.step_id
            logger.error(
                "Step %s failed: %s; aborting",
                step.step_id,
                step_report.first_error,
            )
            break

    report.ended_at = datetime.now(UTC).isoformat()
    return report


def write_audit_entry(
    report: ProvisionReport,
    audit_writer: AuditWriter,
    operation_type: str = "provision",
    context: dict | None = None,
) -> None:
    """Write one run to the audit ledger."""
    receipts = report.receipts
    duration = sum(s.duration_ms for s in report.steps)
    entry = AuditEntry(
        operation_id=report.operation_id,
        operation_type=operation_type,
        steps_run=[s.step_id for s in report.steps],
        aborted_at=report.aborted_at,
        dry_run=report.dry_run,
        status=report.status,
        actions_total=len(receipts),
        actions_succeeded=sum(1 for r in receipts if r.ok),
        actions_skipped=sum(1 for r in receipts if r.skipped),
        actions_failed=sum(1 for r in receipts if r.failed),
        duration_ms=duration,
        errors=report.errors,
        context=context or {},
    )
    audit_writer.write(entry)


def generate_operation_id() -> str:
    """Generate a unique operation ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"op-{now}-{short}"
