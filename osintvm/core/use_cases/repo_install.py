"""
Repo install use case — the repository installer for a single URL.

Same routine the ``repositories`` step runs for each catalog entry,
exposed for ad-hoc installs: ``osintvm repo install URL ENV``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from osintvm.adapters.registry import AdapterRegistry, default_registry
from osintvm.core.config.loader import ConfigError, load_catalog, resolve_catalog_path
from osintvm.core.engine.context import ProvisionContext
from osintvm.core.engine.executor import Step, run_steps, write_audit_entry
from osintvm.core.models.catalog import RepositoryDescriptor
from osintvm.core.persistence.audit import AuditWriter
from osintvm.core.persistence.environment import environment_path, load_environment
from osintvm.core.services.repositories import install_repository
from osintvm.core.use_cases.provision import ProvisionResult

logger = logging.getLogger(__name__)


def install_single_repository(
    url: str,
    env: str,
    parent_dir: Path | None = None,
    subdir: str = "",
    manager: str = "auto",
    install_project: bool = False,
    update: bool = False,
    dry_run: bool = False,
    catalog_path: Path | None = None,
    registry: AdapterRegistry | None = None,
) -> ProvisionResult:
    """Clone ``url`` under ``parent_dir`` and install it into ``env``.

    Args:
        url: Git clone URL.
        env: Isolated-environment directory name.
        parent_dir: Where to clone (default: the catalog's programs dir).
        subdir: Directory inside the clone holding the manifest.
        manager: auto, venv, poetry or none.
        install_project: Also ``pip install .`` into the environment.
        update: Pull an existing clone and re-run the dependency install.
        dry_run: Validate, execute nothing.
        catalog_path: Catalog supplying settings (python, sudo, state dir).
        registry: Optional pre-configured adapter registry.
    """
    result = ProvisionResult()

    try:
        result.catalog_path = resolve_catalog_path(catalog_path)
        catalog = load_catalog(result.catalog_path)
        result.catalog = catalog
        descriptor = RepositoryDescriptor(
            url=url,
            env=env,
            subdir=subdir,
            manager=manager,
            install_project=install_project,
        )
    except ConfigError as e:
        result.error = str(e)
        return result
    except ValueError as e:
        result.error = f"Invalid repository: {e}"
        return result

    target = parent_dir or catalog.settings.programs_path
    state_dir = catalog.settings.state_path
    ctx = ProvisionContext(
        catalog=catalog,
        registry=registry or default_registry(),
        dry_run=dry_run,
        update=update,
        environment=load_environment(environment_path(state_dir)),
    )

    step = Step(
        "repositories",
        descriptor.directory_name,
        lambda c, r: install_repository(c, r, descriptor, target),
    )
    result.steps_selected = [step.step_id]
    report = run_steps([step], ctx)
    result.report = report

    write_audit_entry(
        report,
        AuditWriter(state_dir=state_dir),
        operation_type="repo-install",
        context={"url": url, "env": env, "dir": str(target)},
    )
    return result
