"""
Repository installer — clone a tool and give it its own environment.

For each repository descriptor:

    directory exists?  ── yes ──▶ WARN, skipped   (or, with --update: git pull)
          │ no
          ▼
       git clone
          │
          ▼
    requirements.txt ──▶ python -m venv <env>; <env>/bin/python -m pip install -r
    poetry.lock/Pipfile ─▶ poetry install        (poetry owns the environment)
    neither ───────────▶ clone only

Every command runs with an explicit working directory, so the caller's
own cwd never changes. The first failing command ends the install; a
half-finished clone is left where it is.
"""

from __future__ import annotations

import logging
from pathlib import Path

from osintvm.core.engine.context import ProvisionContext
from osintvm.core.engine.executor import StepReport
from osintvm.core.models.action import Receipt
from osintvm.core.models.catalog import RepositoryDescriptor
from osintvm.core.observability import log

logger = logging.getLogger(__name__)

PLAIN_MANIFEST = "requirements.txt"
LOCK_MANIFESTS = ("poetry.lock", "Pipfile")


def detect_manager(project_dir: Path) -> str:
    """``venv``, ``poetry`` or ``none``, from the manifests in ``project_dir``."""
    if (project_dir / PLAIN_MANIFEST).is_file():
        return "venv"
    if any((project_dir / name).is_file() for name in LOCK_MANIFESTS):
        return "poetry"
    return "none"


def install_repository(
    ctx: ProvisionContext,
    report: StepReport,
    descriptor: RepositoryDescriptor,
    parent_dir: Path,
) -> Receipt:
    """Clone ``descriptor`` under ``parent_dir`` and install its dependencies.

    Returns:
        The last receipt recorded: skipped when the directory already
        exists (and ``ctx.update`` is off), failed at the first failing
        command, ok otherwise.
    """
    name = descriptor.directory_name
    clone_dir = parent_dir / name

    if clone_dir.exists():
        if not ctx.update:
            log("WARN", f"Directory {name} already exists. Skipping git clone.")
            return ctx.skip(report, "git", f"clone {name}", f"{clone_dir} already exists")
        log("INFO", f"Updating {name}...")
        receipt = ctx.run(report, "git", f"pull {name}", operation="pull", path=str(clone_dir))
    else:
        log("INFO", f"Cloning and installing {name}...")
        receipt = ctx.run(
            report,
            "git",
            f"clone {name}",
            operation="clone",
            url=descriptor.url,
            dest=str(clone_dir),
        )
    if not receipt.ok:
        # Failed, or a dry run: nothing on disk to inspect.
        return receipt

    receipt = install_dependencies(ctx, report, descriptor, clone_dir) or receipt
    if receipt.ok:
        log("SUCCESS", f"{name} installed.")
    return receipt


def install_dependencies(
    ctx: ProvisionContext,
    report: StepReport,
    descriptor: RepositoryDescriptor,
    clone_dir: Path,
) -> Receipt | None:
    """Install a cloned repository's dependencies; None when there is nothing to do."""
    project_dir = clone_dir / descriptor.subdir if descriptor.subdir else clone_dir
    if not clone_dir.is_dir():
        # Mock runs report a clone without creating anything.
        logger.debug("%s: nothing cloned at %s", descriptor.directory_name, clone_dir)
        return None
    if not project_dir.is_dir():
        return report.add(
            Receipt.failure(
                adapter="python",
                action_id=f"{report.step_id}:{descriptor.directory_name}",
                error=f"Subdirectory {descriptor.subdir!r} not found in {clone_dir}",
            )
        )

    manager = descriptor.manager
    if manager == "auto":
        manager = detect_manager(project_dir)
    logger.debug("%s: dependency manager %s", descriptor.directory_name, manager)

    env_dir = project_dir / descriptor.env
    label = descriptor.directory_name
    receipt: Receipt | None = None

    if manager == "venv":
        receipt = ensure_environment(ctx, report, env_dir, label)
        if receipt.failed:
            return receipt
        requirements = project_dir / PLAIN_MANIFEST
        if requirements.is_file():
            receipt = ctx.run(
                report,
                "python",
                f"pip install -r {PLAIN_MANIFEST} ({label})",
                operation="pip_install",
                venv=str(env_dir),
                requirements=str(requirements),
                cwd=str(project_dir),
            )
            if receipt.failed:
                return receipt
    elif manager == "poetry":
        receipt = ctx.run(
            report,
            "python",
            f"poetry install ({label})",
            operation="poetry_install",
            path=str(project_dir),
        )
        if receipt.failed:
            return receipt

    if descriptor.install_project:
        receipt = ensure_environment(ctx, report, env_dir, label)
        if receipt.failed:
            return receipt
        receipt = ctx.run(
            report,
            "python",
            f"pip install . ({label})",
            operation="pip_install",
            venv=str(env_dir),
            project=True,
            cwd=str(project_dir),
        )

    return receipt


def ensure_environment(
    ctx: ProvisionContext,
    report: StepReport,
    env_dir: Path,
    label: str,
) -> Receipt:
    """Create the isolated environment unless it is already there."""
    if (env_dir / "bin" / "python").exists():
        return ctx.skip(report, "python", f"create {env_dir.name} ({label})", f"{env_dir} already exists")
    return ctx.run(
        report,
        "python",
        f"create {env_dir.name} ({label})",
        operation="venv",
        python=ctx.settings.python,
        venv=str(env_dir),
        cwd=str(env_dir.parent),
    )


def install_repositories(ctx: ProvisionContext, report: StepReport) -> None:
    """Run the repository installer for every catalog descriptor, in order."""
    if not ctx.catalog.repositories:
        ctx.skip(report, "git", "install repositories", "no repositories declared")
        return

    log("INFO", "Cloning Git repositories and installing Python tools...")
    parent_dir = ctx.settings.programs_path
    for descriptor in ctx.catalog.repositories:
        if install_repository(ctx, report, descriptor, parent_dir).failed:
            return
