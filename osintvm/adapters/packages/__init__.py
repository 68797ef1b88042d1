"""Package manager adapters — apt, gem, snap, pipx, go."""

from osintvm.adapters.packages.apt import AptAdapter
from osintvm.adapters.packages.base import PackageManagerAdapter
from osintvm.adapters.packages.gem import GemAdapter
from osintvm.adapters.packages.golang import GoAdapter
from osintvm.adapters.packages.pipx import PipxAdapter
from osintvm.adapters.packages.snap import SnapAdapter

__all__ = [
    "AptAdapter",
    "GemAdapter",
    "GoAdapter",
    "PackageManagerAdapter",
    "PipxAdapter",
    "SnapAdapter",
]
