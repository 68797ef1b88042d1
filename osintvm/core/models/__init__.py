"""
Domain models — Pydantic types for the provisioner.

All models are re-exported here for convenient access:

    from osintvm.core.models import Catalog, Action, Receipt, ProvisionState
"""

from osintvm.core.models.action import Action, Receipt
from osintvm.core.models.catalog import (
    Artifact,
    Binary,
    Catalog,
    DnsConfig,
    Download,
    GoToolchain,
    InstallerScript,
    MongoDbConfig,
    RepositoryDescriptor,
    ResourceRepo,
    Settings,
    Snap,
)
from osintvm.core.models.state import (
    EnvironmentSettings,
    OperationRecord,
    ProvisionState,
    StepState,
)

__all__ = [
    # action.py
    "Action",
    "Receipt",
    # catalog.py
    "Artifact",
    "Binary",
    "Catalog",
    "DnsConfig",
    "Download",
    "GoToolchain",
    "InstallerScript",
    "MongoDbConfig",
    "RepositoryDescriptor",
    "ResourceRepo",
    "Settings",
    "Snap",
    # state.py
    "EnvironmentSettings",
    "OperationRecord",
    "ProvisionState",
    "StepState",
]
