"""
Process runner — the single place adapters spawn external commands.

Every adapter that shells out goes through ``run_process`` so that
privilege escalation, environment overlay, timeouts, and the mapping of
exit codes onto Receipts behave the same for apt, git, pip and the rest.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import time
from collections.abc import Sequence

from osintvm.adapters.base import ExecutionContext
from osintvm.core.models.action import Receipt

logger = logging.getLogger(__name__)

# Tail of stdout/stderr kept on receipts
_OUTPUT_TAIL = 4000


def format_argv(argv: Sequence[str]) -> str:
    """Render an argv list as a copy-pasteable shell command."""
    return " ".join(shlex.quote(a) for a in argv)


def _is_root() -> bool:
    return hasattr(os, "geteuid") and os.geteuid() == 0


def elevate(argv: Sequence[str], mode: str) -> list[str]:
    """Prefix ``argv`` with sudo according to the catalog's sudo mode.

    - ``never``: run as-is
    - ``always``: always prefix ``sudo``
    - ``auto``: prefix ``sudo`` unless already root
    """
    argv = list(argv)
    if mode == "never":
        return argv
    if mode == "always":
        return ["sudo", *argv]
    if _is_root():
        return argv
    return ["sudo", *argv]


def binary_available(binary: str) -> bool:
    """Whether ``binary`` resolves on PATH."""
    return shutil.which(binary) is not None


def run_process(
    ctx: ExecutionContext,
    adapter: str,
    argv: Sequence[str],
    *,
    privileged: bool = False,
    cwd: str | None = None,
    input_text: str | None = None,
    env: dict[str, str] | None = None,
    metadata: dict | None = None,
) -> Receipt:
    """Run a command for an action and turn the outcome into a Receipt.

    Args:
        ctx: Execution context (supplies sudo mode, timeout, env overlay).
        adapter: Name recorded on the receipt.
        argv: Command to run.
        privileged: Escalate with sudo per ``ctx.sudo``.
        cwd: Working directory (default: ``ctx.working_dir``).
        input_text: Text piped to stdin.
        env: Extra environment for this command only.
        metadata: Extra receipt metadata.

    Returns:
        ok receipt on exit code 0, failed receipt otherwise. Never raises.
    """
    cmd = elevate(argv, ctx.sudo) if privileged else list(argv)
    workdir = cwd or ctx.working_dir
    rendered = format_argv(cmd)
    meta = {"command": rendered, **(metadata or {})}

    full_env = dict(os.environ)
    full_env.update(ctx.env)
    if env:
        full_env.update(env)

    logger.debug("CMD %s (cwd=%s)", rendered, workdir)
    start = time.monotonic()
    try:
        result = subprocess.run(
            cmd,
            cwd=workdir,
            input=input_text,
            capture_output=True,
            text=True,
            timeout=ctx.timeout,
            env=full_env,
        )
    except subprocess.TimeoutExpired:
        return Receipt.failure(
            adapter=adapter,
            action_id=ctx.action.id,
            error=f"Command timed out after {ctx.timeout}s: {rendered}",
            metadata={**meta, "timeout": ctx.timeout},
        )
    except FileNotFoundError as e:
        return Receipt.failure(
            adapter=adapter,
            action_id=ctx.action.id,
            error=f"Command not found: {e.filename or cmd[0]}",
            metadata=meta,
        )
    except Exception as e:
        logger.exception("Subprocess error: %s", rendered)
        return Receipt.failure(
            adapter=adapter,
            action_id=ctx.action.id,
            error=f"Command execution error: {e}",
            metadata=meta,
        )

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = (result.stdout or "").strip()[-_OUTPUT_TAIL:]
    stderr = (result.stderr or "").strip()[-_OUTPUT_TAIL:]
    if stdout:
        logger.debug("STDOUT %s", stdout)
    if stderr:
        logger.debug("STDERR %s", stderr)

    if result.returncode == 0:
        return Receipt.success(
            adapter=adapter,
            action_id=ctx.action.id,
            output=stdout,
            duration_ms=elapsed_ms,
            metadata={**meta, "return_code": 0, "stderr": stderr},
        )
    return Receipt.failure(
        adapter=adapter,
        action_id=ctx.action.id,
        error=stderr or f"Command exited with code {result.returncode}: {rendered}",
        duration_ms=elapsed_ms,
        metadata={**meta, "return_code": result.returncode, "stdout": stdout},
    )
