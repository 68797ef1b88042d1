"""
Bundled data — the default provisioning catalog.

The default catalog (``catalog.yml``) lives next to this module and is
used whenever no ``osintvm.yml`` is found or given.
"""

from __future__ import annotations

from pathlib import Path

DATA_DIR = Path(__file__).parent
DEFAULT_CATALOG_PATH = DATA_DIR / "catalog.yml"
