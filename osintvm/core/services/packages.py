"""
Language package-manager steps — gem, snap, pipx, go.

gem and snap are optional: when the command is missing the step warns
and carries on. pipx and go are installed by earlier steps, so a
missing binary there is a real failure.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from osintvm.core.engine.context import ProvisionContext
from osintvm.core.engine.executor import StepReport
from osintvm.core.models.action import Receipt
from osintvm.core.models.catalog import unique
from osintvm.core.observability import log
from osintvm.core.services.toolchains import go_binary, persist_environment

logger = logging.getLogger(__name__)

PIPX_BIN_DIR = "~/.local/bin"


def install_optional(
    ctx: ProvisionContext,
    report: StepReport,
    adapter: str,
    label: str,
    packages: list[str],
    **params: Any,
) -> Receipt:
    """Batch-install ``packages`` if the ``adapter`` tool exists, else warn and skip."""
    if not packages:
        return ctx.skip(report, adapter, f"install {adapter} packages", "nothing declared")
    if not ctx.available(adapter):
        log("WARN", f"{label} command not found. Skipping {adapter} installs.")
        return ctx.skip(report, adapter, f"install {adapter} packages", f"{adapter} not installed")
    return ctx.run(
        report,
        adapter,
        f"install {len(packages)} {adapter} packages",
        operation="install",
        packages=packages,
        **params,
    )


def install_gems_and_snaps(ctx: ProvisionContext, report: StepReport) -> None:
    """Ruby gems, then snaps (classic snaps in their own call)."""
    log("INFO", "Installing Ruby Gems and Snap packages...")

    if install_optional(ctx, report, "gem", "Ruby gem", unique(ctx.catalog.gems)).failed:
        return

    snaps = ctx.catalog.snaps
    strict = unique([s.name for s in snaps if not s.classic])
    classic = unique([s.name for s in snaps if s.classic])
    if not classic or not ctx.available("snap"):
        install_optional(ctx, report, "snap", "Snap", strict + classic)
        return
    if strict and install_optional(ctx, report, "snap", "Snap", strict).failed:
        return
    # snap takes --classic for a single named snap only
    for name in classic:
        receipt = ctx.run(
            report, "snap", f"install classic snap {name}", operation="install", packages=[name], classic=True
        )
        if receipt.failed:
            return


def install_pipx_tools(ctx: ProvisionContext, report: StepReport) -> None:
    """``pipx ensurepath`` plus one batch install."""
    packages = unique(ctx.catalog.pipx_packages)
    if not packages:
        ctx.skip(report, "pipx", "install pipx packages", "nothing declared")
        return

    log("INFO", "Installing Pipx tools...")
    if ctx.run(report, "pipx", "pipx ensurepath", operation="ensurepath").failed:
        return
    if ctx.run(report, "pipx", f"install {len(packages)} pipx packages", operation="install", packages=packages).failed:
        return

    # pipx puts its shims here; later steps (poetry) need them on PATH.
    ctx.environment.add_path(str(Path(PIPX_BIN_DIR).expanduser()))
    persist_environment(ctx, report)


def install_go_tools(ctx: ProvisionContext, report: StepReport) -> None:
    """``go install`` each module, then drop prebuilt binaries into ``$GOPATH/bin``."""
    modules = unique(ctx.catalog.go_tools)
    binaries = ctx.catalog.binaries
    if not modules and not binaries:
        ctx.skip(report, "go", "install Go tools", "nothing declared")
        return

    log("INFO", "Installing Go tools...")
    go = go_binary(ctx)
    for module in modules:
        # Wildcard installs build many commands; -v shows which.
        verbose = module.split("@", 1)[0].endswith("/...")
        if ctx.run(
            report,
            "go",
            f"go install {module}",
            operation="install",
            packages=[module],
            go=go,
            verbose=verbose,
        ).failed:
            return

    bin_dir = Path(ctx.environment.variables.get("GOPATH") or ctx.settings.go_path_dir) / "bin"
    for binary in binaries:
        if ctx.run(
            report,
            "download",
            f"download {binary.name}",
            operation="download",
            url=binary.url,
            dest=str(bin_dir / binary.name),
            executable=True,
        ).failed:
            return
