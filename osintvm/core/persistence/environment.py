"""
Environment record — persisted toolchain variables.

Toolchain steps record the variables later sessions need (GOROOT,
GOPATH, PATH additions) in ``<state_dir>/environment.json``. From that
record the provisioner renders ``<state_dir>/env.sh``; the user's shell
rc file only ever gains a single guarded line sourcing it.
"""

from __future__ import annotations

import json
import logging
import shlex
from pathlib import Path

from osintvm.core.models.state import EnvironmentSettings
from osintvm.core.persistence.state_file import write_json_atomic

logger = logging.getLogger(__name__)

ENVIRONMENT_FILE = "environment.json"
ENV_SCRIPT_FILE = "env.sh"
RC_COMMENT = "osintvm toolchain environment"


def environment_path(state_dir: Path) -> Path:
    return state_dir / ENVIRONMENT_FILE


def env_script_path(state_dir: Path) -> Path:
    return state_dir / ENV_SCRIPT_FILE


def load_environment(path: Path) -> EnvironmentSettings:
    """Load the environment record; a missing or corrupt file yields an empty one."""
    if not path.is_file():
        return EnvironmentSettings()
    try:
        return EnvironmentSettings.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except Exception as e:
        logger.warning("Cannot load environment record %s: %s — ignoring", path, e)
        return EnvironmentSettings()


def save_environment(settings: EnvironmentSettings, path: Path) -> None:
    write_json_atomic(settings, path)
    logger.debug("Environment record saved to %s", path)


def render_exports(settings: EnvironmentSettings) -> str:
    """POSIX shell ``export`` lines for the record."""
    lines = [f"export {name}={shlex.quote(value)}" for name, value in sorted(settings.variables.items())]
    if settings.path_entries:
        joined = ":".join(settings.path_entries)
        lines.append(f'export PATH="$PATH:{joined}"')
    return "\n".join(lines) + ("\n" if lines else "")


def source_line(script: Path) -> str:
    """The guarded line added to the shell rc file."""
    quoted = shlex.quote(str(script))
    return f"[ -f {quoted} ] && . {quoted}"
