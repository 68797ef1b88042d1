"""
Download steps — release artifacts, .deb files, resource repositories,
installer scripts.
"""

from __future__ import annotations

import logging
from pathlib import Path

from osintvm.adapters.network.download import filename_from_url
from osintvm.core.engine.context import ProvisionContext
from osintvm.core.engine.executor import StepReport
from osintvm.core.models.action import Receipt
from osintvm.core.models.catalog import Artifact, ResourceRepo
from osintvm.core.observability import log

logger = logging.getLogger(__name__)

DEBS_DIR = "debs"


def install_artifact(
    ctx: ProvisionContext,
    report: StepReport,
    artifact: Artifact,
    programs_dir: Path,
) -> Receipt:
    """Download (and unpack) one artifact into ``programs_dir/<name>``."""
    target = programs_dir / artifact.name
    if target.exists() and not ctx.update:
        log("WARN", f"Directory {artifact.name} already exists. Skipping download.")
        return ctx.skip(report, "download", f"install {artifact.name}", f"{target} already exists")

    log("INFO", f"Downloading and installing {artifact.name}...")
    receipt = ctx.run(report, "filesystem", f"create {artifact.name} directory", operation="mkdir", path=str(target))
    if receipt.failed:
        return receipt

    for download in artifact.downloads:
        filename = filename_from_url(download.url)
        receipt = ctx.run(
            report,
            "download",
            f"download {filename}",
            operation="download",
            url=download.url,
            dest=str(target / filename),
        )
        if receipt.failed:
            return receipt
        if download.extract:
            receipt = ctx.run(
                report,
                "download",
                f"unpack {filename}",
                operation="extract",
                archive=str(target / filename),
                dest=str(target),
            )
            if receipt.failed:
                return receipt

    if artifact.executable:
        receipt = ctx.run(
            report,
            "filesystem",
            f"mark {artifact.name} executables",
            operation="chmod_exec",
            path=str(target),
            patterns=artifact.executable,
        )
        if receipt.failed:
            return receipt

    if not ctx.dry_run:
        log("SUCCESS", f"{artifact.name} installed.")
    return receipt


def install_artifacts(ctx: ProvisionContext, report: StepReport) -> None:
    """Release artifacts, then .deb downloads (downloaded, not installed)."""
    catalog = ctx.catalog
    if not catalog.artifacts and not catalog.debs:
        ctx.skip(report, "download", "install artifacts", "nothing declared")
        return

    programs_dir = ctx.settings.programs_path
    for artifact in catalog.artifacts:
        if install_artifact(ctx, report, artifact, programs_dir).failed:
            return

    if not catalog.debs:
        return
    log("INFO", "Downloading .deb packages...")
    debs_dir = programs_dir / DEBS_DIR
    for url in catalog.debs:
        dest = debs_dir / filename_from_url(url)
        if dest.exists() and not ctx.update:
            log("WARN", f"{dest.name} already downloaded. Skipping.")
            ctx.skip(report, "download", f"download {dest.name}", f"{dest} already exists")
            continue
        if ctx.run(report, "download", f"download {dest.name}", operation="download", url=url, dest=str(dest)).failed:
            return


def resource_parent(ctx: ProvisionContext, resource: ResourceRepo) -> Path:
    root = ctx.settings.config_path if resource.root == "config" else ctx.settings.resources_path
    return root / resource.subdir if resource.subdir else root


def clone_resources(ctx: ProvisionContext, report: StepReport) -> None:
    """Clone reference repositories; existing clones are left alone unless updating."""
    if not ctx.catalog.resources:
        ctx.skip(report, "git", "clone resources", "no resources declared")
        return

    log("INFO", "Cloning OSINT resource repositories...")
    for resource in ctx.catalog.resources:
        dest = resource_parent(ctx, resource) / resource.directory_name
        if dest.exists():
            if not ctx.update:
                log("WARN", f"Directory {resource.directory_name} already exists. Skipping git clone.")
                ctx.skip(report, "git", f"clone {resource.directory_name}", f"{dest} already exists")
                continue
            receipt = ctx.run(report, "git", f"pull {resource.directory_name}", operation="pull", path=str(dest))
        else:
            receipt = ctx.run(
                report,
                "git",
                f"clone {resource.directory_name}",
                operation="clone",
                url=resource.url,
                dest=str(dest),
            )
        if receipt.failed:
            return


def run_installer_scripts(ctx: ProvisionContext, report: StepReport) -> None:
    """Fetch each vendor installer script into programs and run it."""
    if not ctx.catalog.scripts:
        ctx.skip(report, "shell", "run installer scripts", "no scripts declared")
        return

    programs_dir = ctx.settings.programs_path
    for script in ctx.catalog.scripts:
        log("INFO", f"Installing {script.name}...")
        path = programs_dir / filename_from_url(script.url)
        receipt = ctx.run(
            report,
            "download",
            f"download {path.name}",
            operation="download",
            url=script.url,
            dest=str(path),
            executable=True,
        )
        if receipt.failed:
            return
        receipt = ctx.run(
            report,
            "shell",
            f"run {path.name}",
            argv=[script.interpreter, str(path)],
            cwd=str(programs_dir),
        )
        if receipt.failed:
            return
        if not ctx.dry_run:
            log("SUCCESS", f"{script.name} installed.")
