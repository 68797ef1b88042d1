"""Configuration — catalog discovery and loading."""

from osintvm.core.config.loader import (
    CATALOG_FILE,
    ConfigError,
    find_catalog_file,
    load_catalog,
    resolve_catalog_path,
)

__all__ = [
    "CATALOG_FILE",
    "ConfigError",
    "find_catalog_file",
    "load_catalog",
    "resolve_catalog_path",
]
