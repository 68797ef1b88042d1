"""
Tests for CLI commands — run, steps, status, catalog, env, repo.
"""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner
from conftest import write_catalog

from osintvm.core.data import DEFAULT_CATALOG_PATH
from osintvm.main import cli


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def catalog_file(tmp_path: Path) -> Path:
    return write_catalog(tmp_path, "apt_packages: [jq]\n")


class TestCLIGlobal:
    """Tests for global CLI behavior."""

    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Provision a Debian VM with OSINT tooling." in result.output
        for command in ("run", "steps", "status", "catalog", "env", "repo"):
            assert command in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "osintvm, version 0.1.0" in result.output

    def test_steps(self, runner):
        result = runner.invoke(cli, ["steps"])
        assert result.exit_code == 0
        lines = result.output.strip().splitlines()
        assert len(lines) == 13
        assert lines[0].split()[:2] == ["1.", "system"]
        assert lines[-1].split()[:2] == ["13.", "scripts"]

    def test_log_file(self, runner, catalog_file, tmp_path, monkeypatch):
        log_file = tmp_path / "osintvm.log"
        monkeypatch.setenv("OSINTVM_LOG_FILE", str(log_file))
        runner.invoke(cli, ["-c", str(catalog_file), "run", "--mock", "--only", "system"])
        assert "Starting OSINT VM setup (1 steps)." in log_file.read_text()


# ── run ──────────────────────────────────────────────────────────────


class TestRunCommand:
    def test_mock_run(self, runner, catalog_file):
        result = runner.invoke(cli, ["-c", str(catalog_file), "run", "--mock"])
        assert result.exit_code == 0, result.output
        assert "[mock] test-vm" in result.output
        assert "✓ system" in result.output
        assert "⊘ dns" in result.output
        assert "[SUCCESS] Debian packages installed." in result.output
        assert "[SUCCESS] Setup complete! The system is ready for use." in result.output
        assert "Result: 13 step(s) completed" in result.output

    def test_only_and_skip(self, runner, catalog_file):
        result = runner.invoke(
            cli,
            ["-c", str(catalog_file), "run", "--mock", "--only", "system", "--only", "dns", "--skip", "dns"],
        )
        assert result.exit_code == 0
        assert "Result: 1 step(s) completed" in result.output

    def test_unknown_step(self, runner, catalog_file):
        result = runner.invoke(cli, ["-c", str(catalog_file), "run", "--mock", "--only", "nope"])
        assert result.exit_code == 1
        assert "[ERROR] Unknown step(s): nope" in result.output

    def test_missing_catalog(self, runner, tmp_path):
        result = runner.invoke(cli, ["-c", str(tmp_path / "missing.yml"), "run", "--mock"])
        assert result.exit_code == 1
        assert "Catalog file not found" in result.output

    def test_json(self, runner, catalog_file):
        result = runner.invoke(cli, ["-c", str(catalog_file), "run", "--mock", "--json", "--only", "system"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["catalog_name"] == "test-vm"
        assert data["report"]["status"] == "ok"
        assert data["steps_selected"] == ["system"]

    def test_json_error(self, runner, tmp_path):
        result = runner.invoke(cli, ["-c", str(tmp_path / "missing.yml"), "run", "--json"])
        assert result.exit_code == 1
        assert "Catalog file not found" in json.loads(result.output)["error"]

    def test_quiet_hides_progress(self, runner, catalog_file):
        result = runner.invoke(cli, ["-q", "-c", str(catalog_file), "run", "--mock"])
        assert result.exit_code == 0
        assert "[INFO]" not in result.output
        assert "[SUCCESS]" not in result.output
        assert "Result: 13 step(s) completed" in result.output

    def test_verbose_shows_output(self, runner, catalog_file):
        result = runner.invoke(cli, ["-v", "-c", str(catalog_file), "run", "--mock", "--only", "system"])
        assert "│ [mock] apt:system:1 executed" in result.output


# ── status ───────────────────────────────────────────────────────────


class TestStatusCommand:
    def test_before_run(self, runner, catalog_file):
        result = runner.invoke(cli, ["-c", str(catalog_file), "status"])
        assert result.exit_code == 0
        assert "test-vm" in result.output
        assert "No provisioning run recorded yet." in result.output

    def test_after_run(self, runner, catalog_file):
        runner.invoke(cli, ["-c", str(catalog_file), "run", "--mock", "--only", "system", "--only", "dns"])
        result = runner.invoke(cli, ["-c", str(catalog_file), "status"])
        assert result.exit_code == 0
        assert "Last run:" in result.output
        assert "2/2 steps" in result.output
        assert "✓ system" in result.output
        assert "⊘ dns" in result.output

    def test_json(self, runner, catalog_file):
        runner.invoke(cli, ["-c", str(catalog_file), "run", "--mock", "--only", "system"])
        result = runner.invoke(cli, ["-c", str(catalog_file), "status", "--json"])
        data = json.loads(result.output)
        assert data["last_operation"]["status"] == "ok"
        assert data["steps"]["system"]["last_status"] == "ok"
        assert len(data["recent_runs"]) == 1

    def test_missing_catalog(self, runner, tmp_path):
        result = runner.invoke(cli, ["-c", str(tmp_path / "missing.yml"), "status"])
        assert result.exit_code == 1


# ── catalog ──────────────────────────────────────────────────────────


class TestCatalogCommands:
    def test_check_bundled(self, runner):
        result = runner.invoke(cli, ["-c", str(DEFAULT_CATALOG_PATH), "catalog", "check"])
        assert result.exit_code == 0, result.output
        assert "✓ Catalog is valid" in result.output
        assert "22 repositories" in result.output

    def test_check_reports_errors(self, runner, tmp_path):
        path = write_catalog(tmp_path, """\
            repositories:
              - {url: "https://github.com/a/tool.git", env: a-env}
              - {url: "https://github.com/b/tool.git", env: b-env}
        """)
        result = runner.invoke(cli, ["-c", str(path), "catalog", "check"])
        assert result.exit_code == 1
        assert "✗ Repositories clone into the same directory: tool" in result.output

    def test_check_warnings(self, runner, tmp_path):
        path = write_catalog(tmp_path, "gems: [colorize, colorize]\n")
        result = runner.invoke(cli, ["-c", str(path), "catalog", "check"])
        assert result.exit_code == 0
        assert "[WARN] Duplicate entries in gems: colorize" in result.output

    def test_check_json(self, runner, tmp_path):
        result = runner.invoke(cli, ["-c", str(tmp_path / "missing.yml"), "catalog", "check", "--json"])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["valid"] is False
        assert "Catalog file not found" in data["errors"][0]

    def test_init(self, runner, tmp_path):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            first = runner.invoke(cli, ["catalog", "init"])
            assert first.exit_code == 0
            assert Path("osintvm.yml").read_text() == DEFAULT_CATALOG_PATH.read_text()

            second = runner.invoke(cli, ["catalog", "init"])
            assert second.exit_code == 1
            assert "already exists" in second.output

            forced = runner.invoke(cli, ["catalog", "init", "--force"])
            assert forced.exit_code == 0


# ── env ──────────────────────────────────────────────────────────────


class TestEnvCommand:
    def _record(self, tmp_path: Path) -> None:
        state = tmp_path / "state"
        state.mkdir(exist_ok=True)
        (state / "environment.json").write_text(
            json.dumps({"variables": {"GOROOT": "/usr/local/go"}, "path_entries": ["/usr/local/go/bin"]})
        )

    def test_empty(self, runner, catalog_file):
        result = runner.invoke(cli, ["-c", str(catalog_file), "env"])
        assert result.exit_code == 0
        assert "No toolchain environment recorded yet." in result.output

    def test_shell(self, runner, catalog_file, tmp_path):
        self._record(tmp_path)
        result = runner.invoke(cli, ["-c", str(catalog_file), "env", "--shell"])
        assert result.output.splitlines() == [
            "export GOROOT=/usr/local/go",
            'export PATH="$PATH:/usr/local/go/bin"',
        ]

    def test_default_names_files(self, runner, catalog_file, tmp_path):
        self._record(tmp_path)
        result = runner.invoke(cli, ["-c", str(catalog_file), "env"])
        assert "environment.json" in result.output
        assert "env.sh" in result.output

    def test_json(self, runner, catalog_file, tmp_path):
        self._record(tmp_path)
        result = runner.invoke(cli, ["-c", str(catalog_file), "env", "--json"])
        assert json.loads(result.output)["variables"] == {"GOROOT": "/usr/local/go"}


# ── repo install ─────────────────────────────────────────────────────


class TestRepoInstallCommand:
    def test_dry_run(self, runner, catalog_file, tmp_path):
        result = runner.invoke(
            cli,
            ["-c", str(catalog_file), "repo", "install", "https://github.com/acme/example-tool.git", "x-env", "--dry-run"],
        )
        assert result.exit_code == 0, result.output
        assert "Cloning and installing example-tool..." in result.output
        assert not (tmp_path / "programs" / "example-tool").exists()

    def test_json(self, runner, catalog_file):
        result = runner.invoke(
            cli,
            [
                "-c", str(catalog_file),
                "repo", "install", "https://github.com/acme/example-tool.git", "x-env",
                "--dry-run", "--json",
            ],
        )
        data = json.loads(result.output)
        assert data["report"]["status"] == "ok"
        assert data["report"]["steps"][0]["status"] == "skipped"

    def test_existing_directory(self, runner, catalog_file, tmp_path):
        (tmp_path / "elsewhere" / "example-tool").mkdir(parents=True)
        result = runner.invoke(
            cli,
            [
                "-c", str(catalog_file),
                "repo", "install", "https://github.com/acme/example-tool.git", "x-env",
                "--dir", str(tmp_path / "elsewhere"),
            ],
        )
        assert result.exit_code == 0
        assert "[WARN] Directory example-tool already exists. Skipping git clone." in result.output

    def test_empty_env(self, runner, catalog_file):
        result = runner.invoke(
            cli,
            ["-c", str(catalog_file), "repo", "install", "https://github.com/acme/example-tool.git", "", "--dry-run"],
        )
        assert result.exit_code == 1
        assert "Invalid repository" in result.output

    def test_bad_manager(self, runner, catalog_file):
        result = runner.invoke(
            cli,
            ["-c", str(catalog_file), "repo", "install", "https://x/y.git", "y-env", "--manager", "conda"],
        )
        assert result.exit_code == 2
