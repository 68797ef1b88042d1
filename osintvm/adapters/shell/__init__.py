"""Shell adapters — commands, filesystem, and the shared process runner."""

from osintvm.adapters.shell.command import ShellCommandAdapter
from osintvm.adapters.shell.filesystem import FilesystemAdapter

__all__ = ["FilesystemAdapter", "ShellCommandAdapter"]
