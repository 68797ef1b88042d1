"""System adapters — service management."""

from osintvm.adapters.system.systemd import SystemdAdapter

__all__ = ["SystemdAdapter"]
