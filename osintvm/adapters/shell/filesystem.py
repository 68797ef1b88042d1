"""
Filesystem adapter — file and directory operations.

Provides a receipt-returning interface for the filesystem changes the
provisioner makes in user-owned locations, so they can be audited and
dry-run like every other action. System paths (``/etc``, ``/usr/local``)
need root and go through the shell adapter with ``privileged``.
"""

from __future__ import annotations

import logging
import shutil
import stat
from pathlib import Path

from osintvm.adapters.base import Adapter, ExecutionContext, require_operation
from osintvm.core.models.action import Receipt

logger = logging.getLogger(__name__)


class FilesystemAdapter(Adapter):
    """File and directory operations with receipts.

    Action params:
        operation (str): One of 'exists', 'mkdir', 'write', 'ensure_line',
                         'remove', 'chmod_exec'.
        path (str): Target path (relative to working_dir or absolute).
        content (str): Content to write (for 'write').
        line (str): Line that must be present (for 'ensure_line').
        patterns (list[str]): Globs under ``path`` (for 'chmod_exec').
    """

    _VALID_OPS = {"exists", "mkdir", "write", "ensure_line", "remove", "chmod_exec"}

    @property
    def name(self) -> str:
        return "filesystem"

    def is_available(self) -> bool:
        return True  # filesystem is always available

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        ok, msg = require_operation(context, self._VALID_OPS)
        if not ok:
            return ok, msg

        params = context.action.params
        if not params.get("path"):
            return False, "Missing required param: 'path'"

        operation = params["operation"]
        if operation == "write" and "content" not in params:
            return False, "Missing required param: 'content' for write operation"
        if operation == "ensure_line" and not params.get("line"):
            return False, "Missing required param: 'line' for ensure_line operation"
        if operation == "chmod_exec" and not params.get("patterns"):
            return False, "Missing required param: 'patterns' for chmod_exec operation"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.action.params["operation"]
        target = Path(context.action.params["path"]).expanduser()
        if not target.is_absolute():
            target = Path(context.working_dir) / target

        try:
            if operation == "exists":
                return self._exists(context, target)
            elif operation == "mkdir":
                return self._mkdir(context, target)
            elif operation == "write":
                return self._write(context, target)
            elif operation == "ensure_line":
                return self._ensure_line(context, target)
            elif operation == "remove":
                return self._remove(context, target)
            elif operation == "chmod_exec":
                return self._chmod_exec(context, target)
            else:
                return Receipt.failure(
                    adapter=self.name,
                    action_id=context.action.id,
                    error=f"Unknown operation: {operation}",
                )
        except Exception as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Filesystem error: {e}",
                metadata={"operation": operation, "path": str(target)},
            )

    # ── Operations ──────────────────────────────────────────────

    def _exists(self, ctx: ExecutionContext, target: Path) -> Receipt:
        exists = target.exists()
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=str(exists),
            metadata={"exists": exists, "is_dir": target.is_dir(), "path": str(target)},
        )

    def _mkdir(self, ctx: ExecutionContext, target: Path) -> Receipt:
        target.mkdir(parents=True, exist_ok=True)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Directory ready: {target}",
            metadata={"path": str(target)},
        )

    def _write(self, ctx: ExecutionContext, target: Path) -> Receipt:
        content = ctx.action.params["content"]
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Written {len(content)} bytes to {target}",
            metadata={"path": str(target), "size": len(content)},
        )

    def _ensure_line(self, ctx: ExecutionContext, target: Path) -> Receipt:
        """Append ``line`` (with an optional comment header) unless present."""
        line = ctx.action.params["line"]
        comment = ctx.action.params.get("comment", "")

        existing = target.read_text(encoding="utf-8") if target.is_file() else ""
        if line in existing.splitlines():
            return Receipt.success(
                adapter=self.name,
                action_id=ctx.action.id,
                output=f"Already present in {target}",
                metadata={"path": str(target), "changed": False},
            )

        block = "\n"
        if comment:
            block += f"# {comment}\n"
        block += f"{line}\n"
        if existing and not existing.endswith("\n"):
            block = "\n" + block

        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("a", encoding="utf-8") as f:
            f.write(block)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Appended to {target}",
            metadata={"path": str(target), "changed": True},
        )

    def _remove(self, ctx: ExecutionContext, target: Path) -> Receipt:
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        elif target.exists() or target.is_symlink():
            target.unlink()
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Removed {target}",
            metadata={"path": str(target)},
        )

    def _chmod_exec(self, ctx: ExecutionContext, target: Path) -> Receipt:
        changed: list[str] = []
        for pattern in ctx.action.params["patterns"]:
            for match in sorted(target.glob(pattern)):
                if match.is_file():
                    mode = match.stat().st_mode
                    match.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
                    changed.append(str(match.relative_to(target)))
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output="\n".join(changed),
            metadata={"path": str(target), "count": len(changed)},
        )
