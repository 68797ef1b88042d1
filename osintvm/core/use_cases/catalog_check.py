"""
Catalog check use case — validate the catalog and report issues.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from osintvm.core.config.loader import ConfigError, load_catalog, resolve_catalog_path
from osintvm.core.models.catalog import Catalog


@dataclass
class CatalogCheckResult:
    """Result of catalog validation."""

    valid: bool = False
    catalog: Catalog | None = None
    catalog_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        catalog = self.catalog
        return {
            "valid": self.valid,
            "catalog_path": str(self.catalog_path) if self.catalog_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "catalog_name": catalog.name if catalog else None,
            "counts": {
                "apt_packages": len(catalog.apt_packages),
                "gems": len(catalog.gems),
                "snaps": len(catalog.snaps),
                "pipx_packages": len(catalog.pipx_packages),
                "go_tools": len(catalog.go_tools),
                "repositories": len(catalog.repositories),
                "artifacts": len(catalog.artifacts),
                "resources": len(catalog.resources),
            }
            if catalog
            else {},
        }


def check_catalog(catalog_path: Path | None = None) -> CatalogCheckResult:
    """Validate the catalog and report issues.

    Args:
        catalog_path: Optional explicit catalog path.

    Returns:
        CatalogCheckResult with validation status and any issues.
    """
    result = CatalogCheckResult()

    try:
        result.catalog_path = resolve_catalog_path(catalog_path)
        catalog = load_catalog(result.catalog_path)
        result.catalog = catalog
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    # Duplicates are removed before install; worth knowing about though
    for list_name, names in catalog.duplicate_packages().items():
        result.warnings.append(f"Duplicate entries in {list_name}: {', '.join(names)}")

    # Two repositories cloning into the same directory: the second never installs
    dirs = [r.directory_name for r in catalog.repositories]
    clashes = sorted({d for d in dirs if dirs.count(d) > 1})
    if clashes:
        result.errors.append(f"Repositories clone into the same directory: {', '.join(clashes)}")

    artifact_names = [a.name for a in catalog.artifacts]
    dupes = sorted({n for n in artifact_names if artifact_names.count(n) > 1})
    if dupes:
        result.errors.append(f"Duplicate artifact names: {', '.join(dupes)}")

    for artifact in catalog.artifacts:
        if not artifact.downloads:
            result.warnings.append(f"Artifact {artifact.name} has no downloads.")

    if "{version}" not in catalog.go_toolchain.download_url_template:
        result.errors.append("go_toolchain.download_url_template must contain '{version}'.")

    if catalog.settings.sudo == "never" and hasattr(os, "geteuid") and os.geteuid() != 0:
        result.warnings.append("settings.sudo is 'never' but not running as root; system steps will fail.")

    result.valid = len(result.errors) == 0
    return result
