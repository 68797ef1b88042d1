"""
Toolchain step — the latest Go release.

Installs Go into ``settings.go_root`` and records GOROOT, GOPATH and the
two ``bin`` directories in the environment record. Later steps build
their subprocess environment from that record; the shell rc file gets a
single line sourcing the rendered ``env.sh``.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from osintvm.core.engine.context import ProvisionContext
from osintvm.core.engine.executor import StepReport
from osintvm.core.models.action import Receipt
from osintvm.core.observability import log
from osintvm.core.persistence.environment import (
    RC_COMMENT,
    env_script_path,
    environment_path,
    render_exports,
    save_environment,
    source_line,
)

logger = logging.getLogger(__name__)

DRY_RUN_VERSION = "go<latest>"


def latest_version(text: str) -> str:
    """The version is the first line of go.dev/VERSION?m=text."""
    lines = text.strip().splitlines()
    return lines[0].strip() if lines else ""


def go_binary(ctx: ProvisionContext) -> str:
    """Path of the go command, from the environment record when present."""
    go_root = ctx.environment.variables.get("GOROOT") or ctx.settings.go_root
    return str(Path(go_root) / "bin" / "go")


def install_go(ctx: ProvisionContext, report: StepReport) -> None:
    """Replace ``go_root`` with the latest Go release."""
    toolchain = ctx.catalog.go_toolchain
    go_root = Path(ctx.settings.go_root)

    log("INFO", "Installing the latest version of Go...")
    receipt = ctx.run(
        report,
        "download",
        "query latest Go version",
        operation="fetch_text",
        url=toolchain.version_url,
    )
    if receipt.failed:
        return

    version = latest_version(receipt.output) if receipt.ok else DRY_RUN_VERSION
    if not version:
        report.add(
            Receipt.failure(
                adapter="download",
                action_id=receipt.action_id,
                error=f"Empty version response from {toolchain.version_url}",
            )
        )
        return

    url = toolchain.download_url_template.format(version=version)
    archive = Path(tempfile.gettempdir()) / toolchain.archive.format(version=version)
    logger.debug("Go %s from %s", version, url)

    sequence = [
        ("shell", f"remove {go_root}", {"argv": ["rm", "-rf", str(go_root)], "privileged": True}),
        ("download", f"download {version}", {"operation": "download", "url": url, "dest": str(archive)}),
        (
            "shell",
            f"unpack {version} into {go_root.parent}",
            {"argv": ["tar", "-C", str(go_root.parent), "-xzf", str(archive)], "privileged": True},
        ),
        ("filesystem", "remove Go archive", {"operation": "remove", "path": str(archive)}),
    ]
    for adapter, name, params in sequence:
        if ctx.run(report, adapter, name, **params).failed:
            return

    log("INFO", f"Adding Go to the PATH via {ctx.settings.shell_rc}")
    ctx.environment.set_variable("GOROOT", str(go_root))
    ctx.environment.set_variable("GOPATH", str(ctx.settings.go_path_dir))
    ctx.environment.add_path(str(go_root / "bin"))
    ctx.environment.add_path(str(ctx.settings.go_path_dir / "bin"))
    persist_environment(ctx, report)


def persist_environment(ctx: ProvisionContext, report: StepReport) -> None:
    """Save the environment record, render env.sh, hook it into the shell rc."""
    state_dir = ctx.settings.state_path
    script = env_script_path(state_dir)

    if not ctx.dry_run:
        save_environment(ctx.environment, environment_path(state_dir))

    receipt = ctx.run(
        report,
        "filesystem",
        f"write {script.name}",
        operation="write",
        path=str(script),
        content=render_exports(ctx.environment),
    )
    if receipt.failed:
        return

    ctx.run(
        report,
        "filesystem",
        f"source {script.name} from {ctx.settings.shell_rc}",
        operation="ensure_line",
        path=str(ctx.settings.shell_rc_path),
        line=source_line(script),
        comment=RC_COMMENT,
    )
