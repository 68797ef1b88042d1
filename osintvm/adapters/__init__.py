"""Adapters — tool bindings for everything the provisioner drives.

Public re-exports for convenient access.
"""

from osintvm.adapters.base import Adapter, ExecutionContext
from osintvm.adapters.mock import MockAdapter
from osintvm.adapters.registry import AdapterRegistry, default_registry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ExecutionContext",
    "MockAdapter",
    "default_registry",
]
