"""
Action and Receipt models — what a step asks for and what it got.

A provisioning step never runs a command itself: it hands an Action to
the adapter registry and gets a Receipt back, even when the command is
missing, times out or exits non-zero. Receipts are what the step
report, the CLI summary and the audit ledger are built from.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class Action(BaseModel):
    """One operation a step wants an adapter to perform.

    ``id`` is ``<step_id>:<seq>``; ``name`` is what gets logged and what
    mock adapters are scripted by (e.g. ``"install 3 apt packages"``).
    """

    id: str
    name: str = ""
    adapter: str                    # registry key: apt, git, python, ...
    params: dict[str, Any] = Field(default_factory=dict)
    for_step: str | None = None     # owning step id

    @property
    def label(self) -> str:
        return self.name or self.id


class Receipt(BaseModel):
    """Outcome of one Action.

    ``metadata`` carries adapter detail: the rendered ``command`` and its
    ``return_code`` for anything run through a subprocess, ``dry_run``
    for actions that were only validated.
    """

    adapter: str
    action_id: str
    status: Literal["ok", "skipped", "failed"] = "ok"
    duration_ms: int = 0

    output: str = ""
    error: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def skipped(self) -> bool:
        return self.status == "skipped"

    @property
    def dry_run(self) -> bool:
        """Validated but not executed."""
        return bool(self.metadata.get("dry_run"))

    @property
    def command(self) -> str | None:
        """Shell-quoted command line, when the action spawned one."""
        return self.metadata.get("command")

    def detail_lines(self, limit: int) -> list[str]:
        """First ``limit`` lines of the error (failed) or output (otherwise)."""
        text = self.error if self.failed else self.output
        if not text:
            return []
        return text.split("\n")[:limit]

    @classmethod
    def success(cls, adapter: str, action_id: str, output: str = "", **kwargs: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, status="ok", output=output, **kwargs)

    @classmethod
    def failure(cls, adapter: str, action_id: str, error: str, **kwargs: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, status="failed", error=error, **kwargs)

    @classmethod
    def skip(cls, adapter: str, action_id: str, reason: str = "", **kwargs: Any) -> Receipt:
        """A skipped action; ``reason`` becomes the output."""
        return cls(adapter=adapter, action_id=action_id, status="skipped", output=reason, **kwargs)
