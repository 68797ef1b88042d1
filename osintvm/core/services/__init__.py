"""Provisioning services — one module per family of steps."""
