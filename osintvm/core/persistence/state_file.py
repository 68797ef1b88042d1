"""
State file persistence — atomic read/write for ProvisionState.

State is stored as JSON in ``<state_dir>/state.json``. Writes are atomic
(write to temp file, then rename) to prevent corruption if the
process crashes mid-write.
"""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path

from pydantic import BaseModel

from osintvm.core.models.state import ProvisionState

logger = logging.getLogger(__name__)

DEFAULT_STATE_FILE = "state.json"


def default_state_path(state_dir: Path) -> Path:
    """Get the state file path inside a state directory."""
    return state_dir / DEFAULT_STATE_FILE


def load_state(path: Path) -> ProvisionState:
    """Load provisioning state from a JSON file.

    Args:
        path: Path to the state JSON file.

    Returns:
        ProvisionState model. If the file doesn't exist or is unreadable,
        returns a fresh state.
    """
    if not path.is_file():
        logger.debug("No state file at %s — starting fresh", path)
        return ProvisionState()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        state = ProvisionState.model_validate(data)
        logger.debug("Loaded state from %s (updated_at=%s)", path, state.updated_at)
        return state
    except json.JSONDecodeError as e:
        logger.warning("Corrupt state file %s: %s — starting fresh", path, e)
        return ProvisionState()
    except Exception as e:
        logger.warning("Cannot load state from %s: %s — starting fresh", path, e)
        return ProvisionState()


def write_json_atomic(model: BaseModel, path: Path) -> None:
    """Serialize a model to ``path`` via write-to-temp-then-rename."""
    path.parent.mkdir(parents=True, exist_ok=True)

    data = model.model_dump(mode="json")
    content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    _fd, tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=".state_",
        suffix=".tmp",
    )
    tmp = Path(tmp_path)
    try:
        with open(_fd, "w", encoding="utf-8") as f:
            f.write(content)
        tmp.replace(path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


def save_state(state: ProvisionState, path: Path) -> None:
    """Save provisioning state to a JSON file (atomic write).

    Args:
        state: The state to save.
        path: Target path for the state file.
    """
    state.touch()
    try:
        write_json_atomic(state, path)
        logger.debug("State saved to %s", path)
    except Exception as e:
        logger.error("Failed to save state to %s: %s", path, e)
        raise
