"""
Catalog loader — reads catalog YAML into domain models.

This is the primary entry point for loading the provisioning catalog.
It reads YAML, validates against Pydantic schemas, and returns a typed
Catalog. Without an explicit path it searches upward for
``osintvm.yml`` and falls back to the catalog bundled with the package.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from osintvm.core.data import DEFAULT_CATALOG_PATH
from osintvm.core.models.catalog import Catalog

logger = logging.getLogger(__name__)

# User catalog filename
CATALOG_FILE = "osintvm.yml"


class ConfigError(Exception):
    """Raised when the catalog is invalid or missing."""


def find_catalog_file(start_dir: Path | None = None) -> Path | None:
    """Search for osintvm.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to osintvm.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CATALOG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def resolve_catalog_path(path: Path | None = None) -> Path:
    """Explicit path, else the nearest osintvm.yml, else the bundled catalog."""
    if path is not None:
        return path
    return find_catalog_file() or DEFAULT_CATALOG_PATH


def load_catalog(path: Path | None = None) -> Catalog:
    """Load and validate the provisioning catalog.

    Args:
        path: Explicit catalog path. If None, see ``resolve_catalog_path``.

    Returns:
        Validated Catalog model.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    path = resolve_catalog_path(path)

    if not path.is_file():
        raise ConfigError(f"Catalog file not found: {path}")

    logger.debug("Loading catalog from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The YAML may wrap everything under a "catalog" key or be flat
    catalog_data = data["catalog"] if isinstance(data.get("catalog"), dict) else data

    try:
        catalog = Catalog.model_validate(catalog_data)
    except Exception as e:
        raise ConfigError(f"Invalid catalog: {e}") from e

    logger.debug(
        "Loaded catalog '%s': %d apt packages, %d repositories",
        catalog.name,
        len(catalog.apt_packages),
        len(catalog.repositories),
    )
    return catalog
