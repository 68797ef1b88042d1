"""
Shared test fixtures and configuration.
"""

import logging
import textwrap
from pathlib import Path

import pytest

from osintvm.adapters.mock import MockAdapter, mock_registry
from osintvm.adapters.registry import AdapterRegistry
from osintvm.core.engine.context import ProvisionContext
from osintvm.core.engine.executor import StepReport
from osintvm.core.models.catalog import Catalog, Settings


def make_settings(root: Path) -> Settings:
    """Settings with every location under ``root``."""
    return Settings(
        programs_dir=str(root / "programs"),
        resources_dir=str(root / "resources"),
        config_dir=str(root / "config"),
        state_dir=str(root / "state"),
        shell_rc=str(root / ".bashrc"),
        go_root=str(root / "usr-local" / "go"),
        go_path=str(root / "gopath"),
        sudo="never",
    )


def write_catalog(root: Path, body: str = "") -> Path:
    """Write an osintvm.yml whose settings point under ``root``."""
    header = textwrap.dedent(f"""\
        name: test-vm
        settings:
          programs_dir: {root / "programs"}
          resources_dir: {root / "resources"}
          config_dir: {root / "config"}
          state_dir: {root / "state"}
          shell_rc: {root / ".bashrc"}
          go_root: {root / "usr-local" / "go"}
          go_path: {root / "gopath"}
          sudo: never
    """)
    path = root / "osintvm.yml"
    path.write_text(header + textwrap.dedent(body))
    return path


def simulate_clone(*files: str):
    """Side effect for a git clone: create ``dest`` holding ``files``."""

    def effect(context) -> None:
        dest = Path(context.action.params["dest"])
        dest.mkdir(parents=True)
        for name in files:
            target = dest / name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text("")

    return effect


def simulate_venv(context) -> None:
    """Side effect for venv creation: a venv with a bin/python."""
    venv = Path(context.action.params["venv"])
    (venv / "bin").mkdir(parents=True)
    (venv / "bin" / "python").write_text("")


@pytest.fixture(autouse=True)
def _restore_logging():
    """Undo setup_logging and JSON-mode level changes after each test."""
    root = logging.getLogger()
    package = logging.getLogger("osintvm")
    handlers, level, package_level = root.handlers[:], root.level, package.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    package.setLevel(package_level)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
def catalog(settings: Settings) -> Catalog:
    """An empty catalog rooted in tmp_path."""
    return Catalog(settings=settings, base_packages=[])


@pytest.fixture
def mocks() -> tuple[AdapterRegistry, dict[str, MockAdapter]]:
    """Registry with a MockAdapter under every adapter name."""
    return mock_registry()


@pytest.fixture
def make_context(catalog: Catalog, mocks):
    """Factory for a ProvisionContext over the mock registry."""
    registry, _ = mocks

    def factory(**kwargs) -> ProvisionContext:
        kwargs.setdefault("catalog", catalog)
        kwargs.setdefault("registry", registry)
        kwargs.setdefault("operation_id", "op-test")
        return ProvisionContext(**kwargs)

    return factory


@pytest.fixture
def report() -> StepReport:
    return StepReport(step_id="test-step", title="Test step")
