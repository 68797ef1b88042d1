"""
osintvm — CLI entrypoint.

Usage:
    osintvm --help
    osintvm run
    osintvm run --dry-run --only repositories
    osintvm status
    osintvm catalog check
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import sys
from pathlib import Path

import click

from osintvm import __version__
from osintvm.core.observability import log, setup_logging

_STATUS_COLORS = {"ok": "green", "skipped": "yellow", "failed": "red"}
_STATUS_MARKS = {"ok": "✓", "skipped": "⊘", "failed": "✗"}


def _json_output() -> None:
    """Keep stdout clean for JSON: only errors (on stderr) get through."""
    logging.getLogger("osintvm").setLevel(logging.ERROR)


@click.group()
@click.version_option(version=__version__, prog_name="osintvm")
@click.option("--verbose", "-v", is_flag=True, help="Show command output for each action.")
@click.option("--quiet", "-q", is_flag=True, help="Only warnings and errors.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--catalog",
    "-c",
    "catalog_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to the catalog (default: ./osintvm.yml, else the bundled catalog).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    catalog_path: str | None,
) -> None:
    """Provision a Debian VM with OSINT tooling."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["catalog_path"] = Path(catalog_path) if catalog_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "WARNING"
    else:
        level = os.environ.get("OSINTVM_LOG_LEVEL", "INFO")

    setup_logging(
        level=level,
        log_file=os.environ.get("OSINTVM_LOG_FILE"),
        log_file_level=os.environ.get("OSINTVM_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--dry-run", is_flag=True, help="Validate every action, execute none.")
@click.option("--only", "only", multiple=True, help="Run only this step (repeatable).")
@click.option("--skip", "skip", multiple=True, help="Leave out this step (repeatable).")
@click.option("--update", is_flag=True, help="Pull existing clones and reinstall their dependencies.")
@click.option("--mock", is_flag=True, help="Use mock adapter (no real execution).")
@click.pass_context
def run(
    ctx: click.Context,
    as_json: bool,
    dry_run: bool,
    only: tuple[str, ...],
    skip: tuple[str, ...],
    update: bool,
    mock: bool,
) -> None:
    """Run the provisioning steps in order, stopping at the first failure.

    Examples:

        osintvm run

        osintvm run --dry-run

        osintvm run --only repositories --update
    """
    from osintvm.core.use_cases.provision import provision

    if as_json:
        _json_output()

    result = provision(
        catalog_path=ctx.obj.get("catalog_path"),
        dry_run=dry_run,
        only=list(only) or None,
        skip=list(skip) or None,
        update=update,
        mock_mode=mock,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if not result.ok:
            sys.exit(1)
        return

    if result.error:
        log("ERROR", result.error)

    report = result.report
    assert report is not None
    verbose = ctx.obj.get("verbose", False)

    mode_label = "[dry-run] " if dry_run else "[mock] " if mock else ""
    click.echo()
    click.secho(f"⚡ {mode_label}{result.catalog.name if result.catalog else ''}", fg="cyan", bold=True)

    for step in report.steps:
        mark = _STATUS_MARKS[step.status]
        click.secho(f"   {mark} {step.step_id:<14}", fg=_STATUS_COLORS[step.status], nl=False)
        click.echo(f" {step.succeeded} ok, {step.skipped} skipped, {step.failed} failed ({step.duration_ms}ms)")
        for receipt in step.receipts:
            if receipt.failed:
                lines = receipt.detail_lines(5)
            elif verbose:
                lines = receipt.detail_lines(10)
            else:
                continue
            for line in lines:
                click.echo(f"     │ {line}")

    not_run = report.steps_planned - len(report.steps)
    click.echo()
    if report.ok:
        click.secho(f"   Result: {len(report.steps)} step(s) completed", fg="green", bold=True)
        return

    click.secho(
        f"   Result: aborted at {report.aborted_at}; {not_run} step(s) not run",
        fg="red",
        bold=True,
    )
    sys.exit(1)


@cli.command()
def steps() -> None:
    """List the provisioning steps in run order."""
    from osintvm.core.use_cases.provision import build_steps

    for i, step in enumerate(build_steps(), start=1):
        click.echo(f"{i:>3}. {step.step_id:<14} {step.title}")


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show the last run and per-step outcome."""
    from osintvm.core.use_cases.status import get_status

    result = get_status(catalog_path=ctx.obj.get("catalog_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(1)
        return

    if result.error:
        log("ERROR", result.error)

    assert result.catalog is not None and result.state is not None
    click.echo()
    click.secho(f"📋 {result.catalog.name}", fg="cyan", bold=True)
    click.echo(f"   Catalog: {result.catalog_path}")
    click.echo(f"   State:   {result.state_path}")

    if not result.has_run:
        click.echo()
        click.echo("   No provisioning run recorded yet. Run 'osintvm run'.")
        click.echo()
        return

    op = result.state.last_operation
    click.echo()
    click.secho("   Last run:", fg="white", bold=True)
    click.echo(f"     {op.operation_id} — ", nl=False)
    click.secho(op.status, fg=_STATUS_COLORS.get(op.status, "white"))
    click.echo(f"     {op.steps_ran}/{op.steps_total} steps, ended {op.ended_at}")
    if op.aborted_at:
        click.secho(f"     aborted at {op.aborted_at}", fg="red")

    click.echo()
    click.secho("   Steps:", fg="white", bold=True)
    for step_id, s in result.state.steps.items():
        state = s.last_status or "unknown"
        click.secho(f"     {_STATUS_MARKS.get(state, '?')} {step_id:<14}", fg=_STATUS_COLORS.get(state, "white"), nl=False)
        click.echo(f" {s.last_run_at or ''}")
        if s.last_error:
            click.echo(f"       │ {s.last_error.splitlines()[0]}")

    if result.environment and result.environment.variables:
        click.echo()
        click.secho("   Environment:", fg="white", bold=True)
        for name, value in sorted(result.environment.variables.items()):
            click.echo(f"     {name}={value}")
    click.echo()


@cli.group()
def catalog() -> None:
    """Inspect and validate the catalog."""


@catalog.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def catalog_check(ctx: click.Context, as_json: bool) -> None:
    """Validate the catalog and report issues."""
    from osintvm.core.use_cases.catalog_check import check_catalog

    result = check_catalog(catalog_path=ctx.obj.get("catalog_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if not result.valid:
            sys.exit(1)
        return

    click.echo(f"Catalog: {result.catalog_path}")
    for warning in result.warnings:
        log("WARN", warning)
    for error in result.errors:
        click.secho(f"   ✗ {error}", fg="red")

    if not result.valid:
        sys.exit(1)

    counts = result.to_dict()["counts"]
    click.secho("   ✓ Catalog is valid", fg="green", bold=True)
    click.echo("   " + ", ".join(f"{n} {name.replace('_', ' ')}" for name, n in counts.items()))


@catalog.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing osintvm.yml.")
def catalog_init(force: bool) -> None:
    """Copy the bundled catalog to ./osintvm.yml for editing."""
    from osintvm.core.config.loader import CATALOG_FILE
    from osintvm.core.data import DEFAULT_CATALOG_PATH

    target = Path.cwd() / CATALOG_FILE
    if target.exists() and not force:
        log("ERROR", f"{target} already exists (use --force to overwrite).")
    shutil.copyfile(DEFAULT_CATALOG_PATH, target)
    log("SUCCESS", f"Wrote {target}")


@cli.command()
@click.option("--shell", "as_shell", is_flag=True, help="Only the export lines, for eval.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def env(ctx: click.Context, as_shell: bool, as_json: bool) -> None:
    """Print the persisted toolchain environment."""
    from osintvm.core.config.loader import ConfigError, load_catalog
    from osintvm.core.persistence.environment import (
        env_script_path,
        environment_path,
        load_environment,
        render_exports,
    )

    try:
        state_dir = load_catalog(ctx.obj.get("catalog_path")).settings.state_path
    except ConfigError as e:
        log("ERROR", str(e))

    record = load_environment(environment_path(state_dir))

    if as_json:
        click.echo(json.dumps(record.model_dump(mode="json"), indent=2))
        return
    if as_shell:
        click.echo(render_exports(record), nl=False)
        return

    if not (record.variables or record.path_entries):
        click.echo("No toolchain environment recorded yet.")
        return
    click.echo(f"# {environment_path(state_dir)} (sourced via {env_script_path(state_dir)})")
    click.echo(render_exports(record), nl=False)


@cli.group()
def repo() -> None:
    """Git-cloned tools with isolated environments."""


@repo.command("install")
@click.argument("url")
@click.argument("env_name", metavar="ENV")
@click.option(
    "--dir",
    "parent_dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Clone under this directory (default: the catalog's programs_dir).",
)
@click.option("--subdir", default="", help="Directory inside the clone holding the manifest.")
@click.option(
    "--manager",
    type=click.Choice(["auto", "venv", "poetry", "none"]),
    default="auto",
    show_default=True,
    help="Dependency manager.",
)
@click.option("--install-project", is_flag=True, help="Also pip install the project itself.")
@click.option("--update", is_flag=True, help="Pull an existing clone and reinstall.")
@click.option("--dry-run", is_flag=True, help="Validate, execute nothing.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def repo_install(
    ctx: click.Context,
    url: str,
    env_name: str,
    parent_dir: str | None,
    subdir: str,
    manager: str,
    install_project: bool,
    update: bool,
    dry_run: bool,
    as_json: bool,
) -> None:
    """Clone URL and install its dependencies into ENV.

    Examples:

        osintvm repo install https://github.com/soxoj/maigret.git maigret-env --install-project
    """
    from osintvm.core.use_cases.repo_install import install_single_repository

    if as_json:
        _json_output()

    result = install_single_repository(
        url=url,
        env=env_name,
        parent_dir=Path(parent_dir).expanduser() if parent_dir else None,
        subdir=subdir,
        manager=manager,
        install_project=install_project,
        update=update,
        dry_run=dry_run,
        catalog_path=ctx.obj.get("catalog_path"),
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if not result.ok:
            sys.exit(1)
        return

    if result.error:
        log("ERROR", result.error)
    if not result.ok:
        sys.exit(1)


if __name__ == "__main__":
    cli()
