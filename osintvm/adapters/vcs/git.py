"""
Git adapter — version control operations.

Provides the git operations the provisioner needs (clone, pull) through
the adapter protocol. Uses the git CLI — never raw API calls.
"""

from __future__ import annotations

import logging
from pathlib import Path

from osintvm.adapters.base import Adapter, ExecutionContext, require_operation
from osintvm.adapters.shell.process import binary_available, run_process
from osintvm.core.models.action import Receipt

logger = logging.getLogger(__name__)


class GitAdapter(Adapter):
    """Git version control operations.

    Action params:
        operation (str): One of 'clone', 'pull'.
        url (str): Repository URL (for 'clone').
        dest (str): Clone destination directory (for 'clone').
        path (str): Existing checkout (for 'pull').
        depth (int): Shallow clone depth (for 'clone', default: full).
    """

    _VALID_OPS = {"clone", "pull"}

    @property
    def name(self) -> str:
        return "git"

    def is_available(self) -> bool:
        return binary_available("git")

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        ok, msg = require_operation(context, self._VALID_OPS)
        if not ok:
            return ok, msg

        params = context.action.params
        if params["operation"] == "clone":
            if not params.get("url"):
                return False, "Missing required param: 'url' for clone operation"
            if not params.get("dest"):
                return False, "Missing required param: 'dest' for clone operation"
        elif not params.get("path"):
            return False, "Missing required param: 'path' for pull operation"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.action.params["operation"]
        if operation == "clone":
            return self._clone(context)
        return self._pull(context)

    # ── Operations ──────────────────────────────────────────────

    def _clone(self, ctx: ExecutionContext) -> Receipt:
        url = ctx.action.params["url"]
        dest = Path(ctx.action.params["dest"])
        depth = ctx.action.params.get("depth")

        dest.parent.mkdir(parents=True, exist_ok=True)
        args = ["git", "clone"]
        if depth:
            args += ["--depth", str(depth)]
        args += [url, str(dest)]

        return run_process(
            ctx,
            self.name,
            args,
            cwd=str(dest.parent),
            env={"GIT_TERMINAL_PROMPT": "0"},
            metadata={"url": url, "dest": str(dest)},
        )

    def _pull(self, ctx: ExecutionContext) -> Receipt:
        path = ctx.action.params["path"]
        return run_process(
            ctx,
            self.name,
            ["git", "pull", "--ff-only"],
            cwd=path,
            env={"GIT_TERMINAL_PROMPT": "0"},
            metadata={"path": path},
        )
