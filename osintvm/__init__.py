"""OSINT VM provisioner — reproducible workstation setup from a catalog."""

__version__ = "0.1.0"
