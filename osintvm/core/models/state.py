"""
ProvisionState — the root state model.

Captures what the last provisioning run did. Serialized to
``<state_dir>/state.json`` and loaded by ``osintvm status``.

It's disposable: delete it and the next run simply starts fresh,
since every step reconciles against the machine itself.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class StepState(BaseModel):
    """Runtime state of a provisioning step."""

    step_id: str
    last_run_at: str | None = None
    last_status: str | None = None  # ok, skipped, failed
    actions_total: int = 0
    actions_failed: int = 0
    last_error: str | None = None


class OperationRecord(BaseModel):
    """Summary of the last run."""

    operation_id: str = ""
    started_at: str = ""
    ended_at: str = ""
    status: str = ""  # ok, failed
    dry_run: bool = False
    steps_total: int = 0
    steps_ran: int = 0
    aborted_at: str | None = None


class ProvisionState(BaseModel):
    """Root state model — serialized to ``<state_dir>/state.json``."""

    # ── Schema ───────────────────────────────────────────────────
    schema_version: int = 1

    # ── Identity ─────────────────────────────────────────────────
    catalog_name: str = ""

    # ── Timestamps ───────────────────────────────────────────────
    created_at: str = Field(default_factory=_now_iso)
    updated_at: str = Field(default_factory=_now_iso)

    # ── Component state ──────────────────────────────────────────
    steps: dict[str, StepState] = Field(default_factory=dict)

    # ── Last run ─────────────────────────────────────────────────
    last_operation: OperationRecord = Field(default_factory=OperationRecord)

    # ── Extensible metadata ──────────────────────────────────────
    metadata: dict[str, Any] = Field(default_factory=dict)

    def touch(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = _now_iso()

    def set_step_state(self, step_id: str, **kwargs: Any) -> None:
        """Update or create a step state entry."""
        if step_id in self.steps:
            for key, value in kwargs.items():
                setattr(self.steps[step_id], key, value)
        else:
            self.steps[step_id] = StepState(step_id=step_id, **kwargs)


class EnvironmentSettings(BaseModel):
    """Persisted toolchain environment.

    Written once by the toolchain step to ``<state_dir>/environment.json``
    and read by later steps and by ``osintvm env``, instead of relying on
    variables exported into the provisioner's own process.
    """

    variables: dict[str, str] = Field(default_factory=dict)
    path_entries: list[str] = Field(default_factory=list)
    updated_at: str = Field(default_factory=_now_iso)

    def set_variable(self, name: str, value: str) -> None:
        self.variables[name] = value

    def add_path(self, entry: str) -> None:
        if entry not in self.path_entries:
            self.path_entries.append(entry)

    def subprocess_env(self, base: dict[str, str]) -> dict[str, str]:
        """Overlay this record on ``base`` (usually ``os.environ``)."""
        env = dict(base)
        env.update(self.variables)
        if self.path_entries:
            current = env.get("PATH", "")
            extra = [p for p in self.path_entries if p not in current.split(":")]
            env["PATH"] = ":".join([current, *extra]) if current else ":".join(extra)
        return env
