"""
Tests for the provisioning steps — system, packages, toolchain, downloads.

Steps run against mock adapters; the Go toolchain tests swap in the real
filesystem adapter so env.sh and the rc file are actually written.
"""

import logging
import tempfile
from pathlib import Path

import pytest

from osintvm.adapters.mock import mock_registry
from osintvm.adapters.shell.filesystem import FilesystemAdapter
from osintvm.core.engine.executor import StepReport
from osintvm.core.models.action import Receipt
from osintvm.core.models.catalog import (
    Artifact,
    Binary,
    DnsConfig,
    Download,
    InstallerScript,
    MongoDbConfig,
    ResourceRepo,
    Snap,
)
from osintvm.core.persistence.environment import load_environment
from osintvm.core.services.artifacts import (
    clone_resources,
    install_artifacts,
    run_installer_scripts,
)
from osintvm.core.services.packages import (
    install_gems_and_snaps,
    install_go_tools,
    install_pipx_tools,
)
from osintvm.core.services.system import (
    bootstrap_system,
    configure_dns,
    configure_services,
    install_apt_packages,
    install_mongodb,
)
from osintvm.core.services.toolchains import DRY_RUN_VERSION, go_binary, install_go, latest_version


@pytest.fixture(autouse=True)
def _info_logs(caplog):
    caplog.set_level(logging.INFO)


def _version(output: str) -> Receipt:
    return Receipt.success(adapter="download", action_id="x", output=output)


# ── System ───────────────────────────────────────────────────────────


class TestBootstrapSystem:
    def test_order(self, make_context, catalog, report, settings):
        journal: list = []
        registry, _ = mock_registry(journal=journal)
        catalog.base_packages = ["curl", "git", "curl"]

        bootstrap_system(make_context(registry=registry), report)

        assert [c.action.name for c in journal] == [
            "apt-get update",
            "apt-get upgrade",
            "install base toolset",
            "create programs directory",
        ]
        assert journal[2].action.params["packages"] == ["curl", "git"]
        assert journal[3].action.params["path"] == str(settings.programs_path)
        assert report.status == "ok"

    def test_update_failure_stops(self, make_context, mocks, report):
        _, adapters = mocks
        adapters["apt"].set_failure("apt-get update", error="E: Could not resolve host")

        bootstrap_system(make_context(), report)

        assert report.status == "failed"
        assert adapters["apt"].called_names == ["apt-get update"]
        assert adapters["filesystem"].call_count == 0


class TestConfigureDns:
    def test_writes_head_file_once(self, make_context, mocks, report, catalog):
        _, adapters = mocks
        catalog.dns = DnsConfig(nameservers=["1.1.1.1", "8.8.8.8"])

        configure_dns(make_context(), report)

        assert adapters["apt"].call_log[0].action.params["packages"] == ["resolvconf"]
        assert adapters["systemd"].call_log[0].action.params["unit"] == "resolvconf.service"
        tee, refresh = (c.action.params for c in adapters["shell"].call_log)
        assert tee["argv"] == ["tee", "/etc/resolvconf/resolv.conf.d/head"]
        assert tee["input"] == "nameserver 1.1.1.1\nnameserver 8.8.8.8\n"
        assert tee["privileged"] is True
        assert refresh["argv"] == ["resolvconf", "-u"]

    def test_no_nameservers(self, make_context, mocks, report, caplog):
        _, adapters = mocks

        configure_dns(make_context(), report)

        assert report.status == "skipped"
        assert adapters["apt"].call_count == 0
        assert "No nameservers configured. Skipping DNS configuration." in caplog.messages


class TestAptAndServices:
    def test_apt_packages_deduplicated(self, make_context, mocks, report, catalog):
        _, adapters = mocks
        catalog.apt_packages = ["jq", "nmap", "jq"]

        install_apt_packages(make_context(), report)

        assert adapters["apt"].call_count == 1
        assert adapters["apt"].call_log[0].action.params["packages"] == ["jq", "nmap"]

    def test_apt_nothing_declared(self, make_context, report):
        install_apt_packages(make_context(), report)
        assert report.status == "skipped"

    def test_services_enabled_in_order(self, make_context, mocks, report, catalog):
        _, adapters = mocks
        catalog.services = ["ssh", "tor"]

        configure_services(make_context(), report)

        assert [c.action.params["unit"] for c in adapters["systemd"].call_log] == ["ssh", "tor"]

    def test_service_failure_stops(self, make_context, mocks, report, catalog):
        _, adapters = mocks
        catalog.services = ["ssh", "tor"]
        adapters["systemd"].set_failure("enable ssh")

        configure_services(make_context(), report)

        assert report.status == "failed"
        assert adapters["systemd"].call_count == 1


class TestMongoDb:
    def test_not_configured(self, make_context, report):
        install_mongodb(make_context(), report)
        assert report.status == "skipped"

    def test_repository_and_service(self, make_context, mocks, report, catalog):
        _, adapters = mocks
        catalog.mongodb = MongoDbConfig(
            key_url="https://pgp.mongodb.com/server-7.0.asc",
            source_line="deb [signed-by=/usr/share/keyrings/mongodb-archive-keyring.gpg] https://repo.mongodb.org/apt/debian bookworm/mongodb-org/7.0 main",
        )
        adapters["download"].set_response("fetch MongoDB signing key", _version("-----BEGIN PGP-----"))

        install_mongodb(make_context(), report)

        assert report.status == "ok"
        dearmor, tee = (c.action.params for c in adapters["shell"].call_log)
        assert dearmor["argv"][:4] == ["gpg", "--batch", "--yes", "--dearmor"]
        assert dearmor["input"] == "-----BEGIN PGP-----"
        assert tee["argv"] == ["tee", "/etc/apt/sources.list.d/mongodb.list"]
        assert tee["input"].endswith("main\n")
        assert adapters["apt"].called_names == ["install gnupg", "apt-get update", "install MongoDB packages"]
        start, enable = (c.action.params for c in adapters["systemd"].call_log)
        assert (start["operation"], start["unit"]) == ("start", "mongod")
        assert enable["now"] is False

    def test_key_failure_stops(self, make_context, mocks, report, catalog):
        _, adapters = mocks
        catalog.mongodb = MongoDbConfig(key_url="https://x/key.asc", source_line="deb x main")
        adapters["download"].set_failure("fetch MongoDB signing key")

        install_mongodb(make_context(), report)

        assert report.status == "failed"
        assert adapters["shell"].call_count == 0


# ── Gems and snaps ───────────────────────────────────────────────────


class TestGemsAndSnaps:
    def test_missing_gem_warns_and_continues(self, make_context, catalog, report, caplog):
        registry, adapters = mock_registry(unavailable=["gem"])
        catalog.gems = ["colorize"]
        catalog.snaps = [Snap(name="ngrok")]

        install_gems_and_snaps(make_context(registry=registry), report)

        assert report.status == "ok"
        assert adapters["gem"].call_count == 0
        assert adapters["snap"].call_count == 1
        assert "Ruby gem command not found. Skipping gem installs." in caplog.messages

    def test_missing_snap_warns(self, make_context, catalog, report, caplog):
        registry, adapters = mock_registry(unavailable=["snap"])
        catalog.snaps = [Snap(name="ngrok"), Snap(name="powershell", classic=True)]

        install_gems_and_snaps(make_context(registry=registry), report)

        assert report.status == "skipped"
        assert adapters["snap"].call_count == 0
        assert "Snap command not found. Skipping snap installs." in caplog.messages

    def test_each_classic_snap_in_its_own_call(self, make_context, mocks, catalog, report):
        _, adapters = mocks
        catalog.snaps = [
            Snap(name="ngrok"),
            Snap(name="powershell", classic=True),
            Snap(name="code", classic=True),
            Snap(name="ngrok"),
        ]

        install_gems_and_snaps(make_context(), report)

        assert report.status == "ok"
        strict, *classic = (c.action.params for c in adapters["snap"].call_log)
        assert strict["packages"] == ["ngrok"]
        assert "classic" not in strict
        assert [p["packages"] for p in classic] == [["powershell"], ["code"]]
        assert all(p["classic"] is True for p in classic)

    def test_classic_snap_failure_stops(self, make_context, mocks, catalog, report):
        _, adapters = mocks
        catalog.snaps = [Snap(name="powershell", classic=True), Snap(name="code", classic=True)]
        adapters["snap"].set_failure("install classic snap powershell")

        install_gems_and_snaps(make_context(), report)

        assert report.status == "failed"
        assert adapters["snap"].called_names == ["install classic snap powershell"]

    def test_gem_failure_stops(self, make_context, mocks, catalog, report):
        _, adapters = mocks
        catalog.gems = ["colorize"]
        catalog.snaps = [Snap(name="ngrok")]
        adapters["gem"].set_failure("install 1 gem packages")

        install_gems_and_snaps(make_context(), report)

        assert report.status == "failed"
        assert adapters["snap"].call_count == 0


# ── Pipx ─────────────────────────────────────────────────────────────


class TestPipx:
    def test_ensurepath_then_install(self, make_context, mocks, catalog, report, settings, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path / "home"))
        _, adapters = mocks
        catalog.pipx_packages = ["poetry", "holehe", "poetry"]
        ctx = make_context()

        install_pipx_tools(ctx, report)

        assert adapters["pipx"].called_names == ["pipx ensurepath", "install 2 pipx packages"]
        assert adapters["pipx"].call_log[1].action.params["packages"] == ["poetry", "holehe"]
        bin_dir = str(tmp_path / "home" / ".local" / "bin")
        assert ctx.environment.path_entries == [bin_dir]
        assert load_environment(settings.state_path / "environment.json").path_entries == [bin_dir]

    def test_nothing_declared(self, make_context, mocks, report):
        install_pipx_tools(make_context(), report)
        assert report.status == "skipped"
        assert mocks[1]["pipx"].call_count == 0


# ── Go toolchain ─────────────────────────────────────────────────────


class TestGoToolchain:
    @pytest.fixture
    def registry(self, mocks):
        registry, adapters = mocks
        registry.register(FilesystemAdapter())
        adapters["download"].set_response("query latest Go version", _version("go1.22.0\ntime 2024-02-06"))
        return registry

    def test_latest_version(self):
        assert latest_version("go1.22.0\ntime 2024-02-06T17:56:04Z\n") == "go1.22.0"
        assert latest_version("") == ""

    def test_install_sequence(self, make_context, mocks, registry, report, settings):
        _, adapters = mocks

        install_go(make_context(registry=registry), report)

        assert report.status == "ok"
        rm, tar = (c.action.params["argv"] for c in adapters["shell"].call_log)
        assert rm == ["rm", "-rf", settings.go_root]
        archive = str(Path(tempfile.gettempdir()) / "go1.22.0.linux-amd64.tar.gz")
        assert tar == ["tar", "-C", str(Path(settings.go_root).parent), "-xzf", archive]
        download = adapters["download"].call_log[1].action.params
        assert download["url"] == "https://go.dev/dl/go1.22.0.linux-amd64.tar.gz"
        assert download["dest"] == archive

    def test_custom_archive_name(self, make_context, mocks, registry, catalog, report):
        _, adapters = mocks
        catalog.go_toolchain.download_url_template = "https://mirror.example/go/{version}.linux-arm64.tar.gz"
        catalog.go_toolchain.archive = "{version}.linux-arm64.tar.gz"

        install_go(make_context(registry=registry), report)

        archive = str(Path(tempfile.gettempdir()) / "go1.22.0.linux-arm64.tar.gz")
        download = adapters["download"].call_log[1].action.params
        assert download["url"] == "https://mirror.example/go/go1.22.0.linux-arm64.tar.gz"
        assert download["dest"] == archive
        assert adapters["shell"].call_log[1].action.params["argv"][-1] == archive

    def test_environment_written_once(self, make_context, registry, settings):
        for _ in range(2):
            install_go(make_context(registry=registry), StepReport(step_id="go-toolchain"))

        env = load_environment(settings.state_path / "environment.json")
        assert env.variables["GOROOT"] == settings.go_root
        assert env.variables["GOPATH"] == str(settings.go_path_dir)
        assert env.path_entries == [f"{settings.go_root}/bin", f"{settings.go_path_dir}/bin"]

        script = (settings.state_path / "env.sh").read_text()
        assert f"export GOROOT={settings.go_root}" in script
        assert "export PATH=" in script

        rc = settings.shell_rc_path.read_text()
        assert rc.count("env.sh") == 2  # the guard tests the file, then sources it
        assert rc.count("# osintvm toolchain environment") == 1

    def test_empty_version_fails(self, make_context, mocks, registry, report):
        _, adapters = mocks
        adapters["download"].set_response("query latest Go version", _version(""))

        install_go(make_context(registry=registry), report)

        assert report.status == "failed"
        assert "Empty version response" in report.first_error
        assert adapters["shell"].call_count == 0

    def test_dry_run(self, make_context, mocks, registry, report, settings):
        _, adapters = mocks

        install_go(make_context(registry=registry, dry_run=True), report)

        assert report.status == "skipped"
        assert adapters["shell"].call_count == 0
        assert not (settings.state_path / "environment.json").exists()
        assert not settings.shell_rc_path.exists()
        tar = [r for r in report.receipts if "unpack" in r.output]
        assert DRY_RUN_VERSION in tar[0].output

    def test_go_binary_prefers_record(self, make_context, settings):
        ctx = make_context()
        assert go_binary(ctx) == f"{settings.go_root}/bin/go"
        ctx.environment.set_variable("GOROOT", "/opt/go")
        assert go_binary(ctx) == "/opt/go/bin/go"


# ── Go tools ─────────────────────────────────────────────────────────


class TestGoTools:
    def test_one_install_per_module(self, make_context, mocks, catalog, report, settings):
        _, adapters = mocks
        catalog.go_tools = [
            "github.com/tomnomnom/waybackurls@latest",
            "github.com/tomnomnom/gron/...@latest",
        ]

        install_go_tools(make_context(), report)

        first, second = (c.action.params for c in adapters["go"].call_log)
        assert first["packages"] == ["github.com/tomnomnom/waybackurls@latest"]
        assert first["go"] == f"{settings.go_root}/bin/go"
        assert first["verbose"] is False
        assert second["verbose"] is True

    def test_binaries_into_gopath(self, make_context, mocks, catalog, report):
        _, adapters = mocks
        catalog.binaries = [Binary(name="kiterunner", url="https://x.org/kr")]
        ctx = make_context()
        ctx.environment.set_variable("GOPATH", "/home/u/go")

        install_go_tools(ctx, report)

        params = adapters["download"].call_log[0].action.params
        assert params["dest"] == "/home/u/go/bin/kiterunner"
        assert params["executable"] is True

    def test_failure_stops(self, make_context, mocks, catalog, report):
        _, adapters = mocks
        catalog.go_tools = ["github.com/a/one@latest", "github.com/a/two@latest"]
        catalog.binaries = [Binary(name="kr", url="https://x.org/kr")]
        adapters["go"].set_failure("go install github.com/a/one@latest")

        install_go_tools(make_context(), report)

        assert adapters["go"].call_count == 1
        assert adapters["download"].call_count == 0

    def test_nothing_declared(self, make_context, report):
        install_go_tools(make_context(), report)
        assert report.status == "skipped"


# ── Artifacts, debs, resources, scripts ──────────────────────────────


class TestArtifacts:
    def test_download_extract_chmod(self, make_context, catalog, report, settings):
        journal: list = []
        registry, _ = mock_registry(journal=journal)
        catalog.artifacts = [
            Artifact(
                name="tool",
                downloads=[Download(url="https://x.org/tool.zip", extract=True), Download(url="https://x.org/data.txt")],
                executable=["*.sh"],
            )
        ]

        install_artifacts(make_context(registry=registry), report)

        assert [c.action.name for c in journal] == [
            "create tool directory",
            "download tool.zip",
            "unpack tool.zip",
            "download data.txt",
            "mark tool executables",
        ]
        target = str(settings.programs_path / "tool")
        assert journal[2].action.params == {
            "operation": "extract",
            "archive": f"{target}/tool.zip",
            "dest": target,
        }

    def test_existing_directory_skipped(self, make_context, mocks, catalog, report, settings, caplog):
        _, adapters = mocks
        (settings.programs_path / "tool").mkdir(parents=True)
        catalog.artifacts = [Artifact(name="tool", downloads=[Download(url="https://x.org/tool.zip")])]

        install_artifacts(make_context(), report)

        assert adapters["download"].call_count == 0
        assert "Directory tool already exists. Skipping download." in caplog.messages

    def test_debs(self, make_context, mocks, catalog, report, settings):
        _, adapters = mocks
        debs = settings.programs_path / "debs"
        debs.mkdir(parents=True)
        (debs / "old.deb").write_text("")
        catalog.debs = ["https://x.org/old.deb", "https://x.org/new_1.0_amd64.deb"]

        install_artifacts(make_context(), report)

        assert adapters["download"].call_count == 1
        assert adapters["download"].call_log[0].action.params["dest"] == str(debs / "new_1.0_amd64.deb")
        assert report.skipped == 1


class TestResources:
    def test_config_root_and_subdir(self, make_context, mocks, catalog, report, settings):
        _, adapters = mocks
        catalog.resources = [
            ResourceRepo(url="https://github.com/proabiral/Fresh-Resolvers.git", root="config", subdir="amass"),
            ResourceRepo(url="https://github.com/jivoi/awesome-osint.git"),
        ]

        clone_resources(make_context(), report)

        first, second = (c.action.params["dest"] for c in adapters["git"].call_log)
        assert first == str(settings.config_path / "amass" / "Fresh-Resolvers")
        assert second == str(settings.resources_path / "awesome-osint")

    def test_existing_clone(self, make_context, mocks, catalog, report, settings):
        _, adapters = mocks
        (settings.resources_path / "awesome-osint").mkdir(parents=True)
        catalog.resources = [ResourceRepo(url="https://github.com/jivoi/awesome-osint.git")]

        clone_resources(make_context(), report)
        assert adapters["git"].call_count == 0

        clone_resources(make_context(update=True), report)
        assert adapters["git"].call_log[0].action.params["operation"] == "pull"


class TestInstallerScripts:
    def test_download_then_run(self, make_context, mocks, catalog, report, settings):
        _, adapters = mocks
        catalog.scripts = [InstallerScript(name="Maltego", url="https://x.org/get/install.sh")]

        run_installer_scripts(make_context(), report)

        script = str(settings.programs_path / "install.sh")
        download = adapters["download"].call_log[0].action.params
        assert download["dest"] == script
        assert download["executable"] is True
        run = adapters["shell"].call_log[0].action.params
        assert run["argv"] == ["bash", script]
        assert run["cwd"] == str(settings.programs_path)

    def test_download_failure_skips_run(self, make_context, mocks, catalog, report):
        _, adapters = mocks
        catalog.scripts = [InstallerScript(name="x", url="https://x.org/install.sh")]
        adapters["download"].set_failure("download install.sh")

        run_installer_scripts(make_context(), report)

        assert adapters["shell"].call_count == 0
