"""Persistence — state file, audit ledger, and environment record."""
