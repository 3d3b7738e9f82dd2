"""Persistence of the batch state file, the run's checkpoint.

The whole state is one JSON document, replaced in full on every write.
Records keep their order, so a load followed by a write is byte-stable.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from . import config
from . import log as batchpatch_log
from .errors import StateFileError, StateNotFoundError
from .models import BatchState


def dumps(state: BatchState) -> str:
    """Serialize a state exactly as it is written to disk."""
    payload = state.model_dump(mode="json", by_alias=True, exclude_none=True)
    return json.dumps(payload, indent=2) + "\n"


def load(path: Path) -> BatchState:
    """Load the batch state from ``path``.

    Raises:
        StateNotFoundError: When no state file exists yet.
        StateFileError: When the file cannot be read or is not a valid state.
    """
    batchpatch_log.debug(f"Loading state from {path}...")
    try:
        payload = config.load_json(path)
    except (OSError, json.JSONDecodeError) as exc:
        raise StateFileError(f"failed to read state file {path}: {exc}") from exc
    if payload is None:
        raise StateNotFoundError(f"no state file at {path}")
    try:
        return BatchState.model_validate(payload)
    except ValidationError as exc:
        raise StateFileError(f"invalid state file {path}: {exc}") from exc


def write(path: Path, state: BatchState) -> None:
    """Replace the state file with the full serialized state."""
    batchpatch_log.debug(f"Writing updated state to {path}...")
    try:
        config.write_json(path, state)
    except OSError as exc:
        raise StateFileError(f"failed to write state file {path}: {exc}") from exc


def create(path: Path) -> BatchState:
    """Create, persist and return a fresh empty state."""
    batchpatch_log.info(f"Creating new state file at {path}...")
    state = BatchState()
    write(path, state)
    return state
