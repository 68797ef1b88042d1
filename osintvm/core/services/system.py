"""
System steps — apt, DNS, services, MongoDB.

Everything here needs root; the adapters add ``sudo`` according to
``settings.sudo``.
"""

from __future__ import annotations

import logging

from osintvm.core.engine.context import ProvisionContext
from osintvm.core.engine.executor import StepReport
from osintvm.core.models.catalog import unique
from osintvm.core.observability import log

logger = logging.getLogger(__name__)


def bootstrap_system(ctx: ProvisionContext, report: StepReport) -> None:
    """Refresh package indices, upgrade, install the base toolset."""
    log("INFO", "Updating system and installing base packages...")

    for operation in ("update", "upgrade"):
        if ctx.run(report, "apt", f"apt-get {operation}", operation=operation).failed:
            return

    packages = unique(ctx.catalog.base_packages)
    if packages:
        if ctx.run(report, "apt", "install base toolset", operation="install", packages=packages).failed:
            return

    ctx.run(
        report,
        "filesystem",
        "create programs directory",
        operation="mkdir",
        path=str(ctx.settings.programs_path),
    )


def configure_dns(ctx: ProvisionContext, report: StepReport) -> None:
    """Point resolvconf at the catalog's public resolvers."""
    dns = ctx.catalog.dns
    if not dns.nameservers:
        log("WARN", "No nameservers configured. Skipping DNS configuration.")
        ctx.skip(report, "shell", "configure DNS", "no nameservers")
        return

    log("INFO", "Configuring DNS resolvers...")
    if ctx.run(report, "apt", "install resolvconf", operation="install", packages=["resolvconf"]).failed:
        return
    if ctx.run(report, "systemd", "enable resolvconf", operation="enable", unit="resolvconf.service").failed:
        return

    # One write of the whole head file, so re-runs never stack entries.
    content = "".join(f"nameserver {ns}\n" for ns in dns.nameservers)
    receipt = ctx.run(
        report,
        "shell",
        f"write {dns.head_file}",
        argv=["tee", dns.head_file],
        input=content,
        privileged=True,
    )
    if receipt.failed:
        return

    ctx.run(report, "shell", "refresh resolvconf", argv=["resolvconf", "-u"], privileged=True)


def install_apt_packages(ctx: ProvisionContext, report: StepReport) -> None:
    """Install the catalog's apt packages in one batch."""
    packages = unique(ctx.catalog.apt_packages)
    if not packages:
        ctx.skip(report, "apt", "install packages", "no apt packages declared")
        return

    log("INFO", f"Installing {len(packages)} Debian packages...")
    ctx.run(report, "apt", "install catalog packages", operation="install", packages=packages)


def configure_services(ctx: ProvisionContext, report: StepReport) -> None:
    """Start and enable the catalog's systemd services."""
    if not ctx.catalog.services:
        ctx.skip(report, "systemd", "enable services", "no services declared")
        return

    log("INFO", "Starting and enabling services...")
    for unit in ctx.catalog.services:
        if ctx.run(report, "systemd", f"enable {unit}", operation="enable", unit=unit).failed:
            return


def install_mongodb(ctx: ProvisionContext, report: StepReport) -> None:
    """Add the MongoDB apt repository, install the server, start it."""
    mongo = ctx.catalog.mongodb
    if mongo is None:
        ctx.skip(report, "apt", "install MongoDB", "mongodb not configured")
        return

    log("INFO", "Installing and configuring MongoDB...")
    if ctx.run(report, "apt", "install gnupg", operation="install", packages=["gnupg", "curl"]).failed:
        return

    key = ctx.run(report, "download", "fetch MongoDB signing key", operation="fetch_text", url=mongo.key_url)
    if key.failed:
        return

    steps = [
        (
            "shell",
            f"dearmor key into {mongo.keyring}",
            {
                "argv": ["gpg", "--batch", "--yes", "--dearmor", "-o", mongo.keyring],
                "input": key.output if key.ok else "",
                "privileged": True,
            },
        ),
        (
            "shell",
            f"write {mongo.list_file}",
            {"argv": ["tee", mongo.list_file], "input": mongo.source_line + "\n", "privileged": True},
        ),
        ("apt", "apt-get update", {"operation": "update"}),
        ("apt", "install MongoDB packages", {"operation": "install", "packages": mongo.packages}),
        ("systemd", f"start {mongo.service}", {"operation": "start", "unit": mongo.service}),
        ("systemd", f"enable {mongo.service}", {"operation": "enable", "unit": mongo.service, "now": False}),
    ]
    for adapter, name, params in steps:
        if ctx.run(report, adapter, name, **params).failed:
            return
