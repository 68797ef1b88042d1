"""VCS adapters — git."""

from osintvm.adapters.vcs.git import GitAdapter

__all__ = ["GitAdapter"]
