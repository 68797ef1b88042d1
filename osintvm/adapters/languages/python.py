"""
Python adapter — isolated environments and dependency installs.

Creates per-tool virtual environments and installs dependencies into
them, or delegates to poetry for projects that manage their own
environment through a lock file.
"""

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path

from osintvm.adapters.base import Adapter, ExecutionContext, require_operation
from osintvm.adapters.shell.process import binary_available, run_process
from osintvm.core.models.action import Receipt

logger = logging.getLogger(__name__)


def venv_python(venv: Path) -> Path:
    """Interpreter inside a virtual environment."""
    return venv / "bin" / "python"


class PythonAdapter(Adapter):
    """Python language toolchain adapter.

    Installing into a venv calls the venv's own interpreter
    (``<venv>/bin/python -m pip``), which is what ``source activate``
    followed by ``pip`` amounts to, without touching the caller's shell.

    Action params:
        operation (str): One of 'version', 'venv', 'pip_install', 'poetry_install'.
        python (str): Base interpreter for 'venv' (default: python3).
        venv (str): Virtual environment directory ('venv', 'pip_install').
        requirements (str): Requirements file (for 'pip_install').
        packages (list[str]): Package specs (for 'pip_install').
        project (bool): Install the project in cwd, ``pip install .``.
        path (str): Project directory (for 'poetry_install').
    """

    _VALID_OPS = {"version", "venv", "pip_install", "poetry_install"}

    @property
    def name(self) -> str:
        return "python"

    def is_available(self) -> bool:
        return binary_available("python3") or binary_available("python")

    def version(self, interpreter: str = "python3") -> str | None:
        """Detect the Python version string."""
        try:
            result = subprocess.run(
                [interpreter, "--version"],
                capture_output=True,
                text=True,
                timeout=5,
            )
            if result.returncode == 0:
                # "Python 3.12.8" → "3.12.8"
                match = re.search(r"(\d+\.\d+\.\d+)", result.stdout + result.stderr)
                return match.group(1) if match else None
        except (subprocess.TimeoutExpired, FileNotFoundError):
            pass
        return None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        ok, msg = require_operation(context, self._VALID_OPS)
        if not ok:
            return ok, msg

        params = context.action.params
        operation = params["operation"]
        if operation in ("venv", "pip_install") and not params.get("venv"):
            return False, f"Missing required param: 'venv' for {operation} operation"
        if operation == "pip_install" and not (
            params.get("requirements") or params.get("packages") or params.get("project")
        ):
            return False, "pip_install needs one of 'requirements', 'packages', 'project'"
        if operation == "poetry_install" and not params.get("path"):
            return False, "Missing required param: 'path' for poetry_install operation"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.action.params["operation"]
        if operation == "version":
            return self._get_version(context)
        elif operation == "venv":
            return self._create_venv(context)
        elif operation == "pip_install":
            return self._pip_install(context)
        return self._poetry_install(context)

    # ── Operations ──────────────────────────────────────────────

    def _get_version(self, ctx: ExecutionContext) -> Receipt:
        interpreter = ctx.action.params.get("python", "python3")
        ver = self.version(interpreter)
        if ver:
            return Receipt.success(
                adapter=self.name,
                action_id=ctx.action.id,
                output=ver,
                metadata={"version": ver, "interpreter": interpreter},
            )
        return Receipt.failure(
            adapter=self.name,
            action_id=ctx.action.id,
            error="Could not determine Python version",
        )

    def _create_venv(self, ctx: ExecutionContext) -> Receipt:
        interpreter = ctx.action.params.get("python", "python3")
        venv = ctx.action.params["venv"]
        return run_process(
            ctx,
            self.name,
            [interpreter, "-m", "venv", venv],
            metadata={"venv": venv},
        )

    def _pip_install(self, ctx: ExecutionContext) -> Receipt:
        params = ctx.action.params
        venv = Path(params["venv"])
        if not venv.is_absolute():
            venv = Path(ctx.working_dir) / venv

        cmd = [str(venv_python(venv)), "-m", "pip", "install"]
        if params.get("requirements"):
            cmd.extend(["-r", params["requirements"]])
        elif params.get("packages"):
            cmd.extend(params["packages"])
        else:
            cmd.append(".")

        return run_process(ctx, self.name, cmd, metadata={"venv": str(venv)})

    def _poetry_install(self, ctx: ExecutionContext) -> Receipt:
        path = ctx.action.params["path"]
        return run_process(
            ctx,
            self.name,
            ["poetry", "install", "--no-interaction"],
            cwd=path,
            metadata={"path": path},
        )
