"""
Status use case — last run, per-step outcome and the toolchain record.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from osintvm.core.config.loader import ConfigError, load_catalog, resolve_catalog_path
from osintvm.core.models.catalog import Catalog
from osintvm.core.models.state import EnvironmentSettings, ProvisionState
from osintvm.core.persistence.audit import AuditEntry, AuditWriter
from osintvm.core.persistence.environment import environment_path, load_environment
from osintvm.core.persistence.state_file import default_state_path, load_state


@dataclass
class StatusResult:
    """What the provisioner knows about this machine."""

    catalog: Catalog | None = None
    catalog_path: Path | None = None
    state: ProvisionState | None = None
    state_path: Path | None = None
    environment: EnvironmentSettings | None = None
    recent_runs: list[AuditEntry] = field(default_factory=list)
    error: str | None = None

    @property
    def has_run(self) -> bool:
        return bool(self.state and self.state.last_operation.operation_id)

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["catalog"] = {
            "name": self.catalog.name if self.catalog else "",
            "path": str(self.catalog_path) if self.catalog_path else None,
        }
        result["state_path"] = str(self.state_path) if self.state_path else None

        if self.state:
            result["last_operation"] = self.state.last_operation.model_dump(mode="json")
            result["steps"] = {
                step_id: {
                    "last_status": s.last_status,
                    "last_run_at": s.last_run_at,
                    "actions_total": s.actions_total,
                    "actions_failed": s.actions_failed,
                    "last_error": s.last_error,
                }
                for step_id, s in self.state.steps.items()
            }

        if self.environment:
            result["environment"] = {
                "variables": self.environment.variables,
                "path_entries": self.environment.path_entries,
            }

        result["recent_runs"] = [e.model_dump(mode="json") for e in self.recent_runs]
        return result


def get_status(catalog_path: Path | None = None, recent: int = 5) -> StatusResult:
    """Gather state file, environment record and recent audit entries.

    Args:
        catalog_path: Optional explicit catalog path (locates the state dir).
        recent: How many audit entries to include.
    """
    result = StatusResult()

    try:
        result.catalog_path = resolve_catalog_path(catalog_path)
        result.catalog = load_catalog(result.catalog_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    state_dir = result.catalog.settings.state_path
    result.state_path = default_state_path(state_dir)
    result.state = load_state(result.state_path)
    result.environment = load_environment(environment_path(state_dir))
    result.recent_runs = AuditWriter(state_dir=state_dir).read_recent(recent)
    return result
