"""Application configuration for batchpatch.

This module reads the JSON application config (GitHub access token, SSH key
path), validates it with Pydantic, and provides the JSON file helpers shared
with the state store.

Example:
    >>> AppConfig.model_validate({"githubAccessToken": "t"}).github_access_token
    't'
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from tempfile import NamedTemporaryFile

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .errors import ConfigError


class AppConfig(BaseModel):
    """Credential material consumed by the credential resolver.

    Attributes:
        github_access_token: Token for HTTPS pushes and the GitHub REST API.
        git_ssh_key_path: Private key used for SSH pushes and clones.

    Example:
        >>> AppConfig().git_ssh_key_path is None
        True
    """

    model_config = ConfigDict(
        extra="allow",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    github_access_token: str | None = None
    git_ssh_key_path: str | None = None

    @field_validator("github_access_token", "git_ssh_key_path", mode="before")
    @classmethod
    def normalize_optional_strings(cls, value: object) -> object:
        if value is None:
            return None
        if isinstance(value, str):
            normalized = value.strip()
            return normalized or None
        return value


def load_json(path: Path) -> object | None:
    """Load a JSON file if it exists.

    Args:
        path: Path to the JSON file.

    Returns:
        Parsed payload, or ``None`` if the file does not exist.

    Example:
        >>> load_json(Path("missing.json")) is None
        True
    """
    if not path.exists():
        return None
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def write_json(path: Path, payload: object) -> None:
    """Atomically replace ``path`` with a JSON payload.

    The payload is written to a sibling temporary file which then replaces
    the target, so readers never observe a partially written document.
    """
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json", by_alias=True, exclude_none=True)
    directory = path.parent
    directory.mkdir(parents=True, exist_ok=True)
    with NamedTemporaryFile(
        "w",
        encoding="utf-8",
        dir=directory,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
    ) as handle:
        json.dump(payload, handle, indent=2)
        handle.write("\n")
        temp_path = Path(handle.name)
    try:
        os.replace(temp_path, path)
    except OSError:
        temp_path.unlink(missing_ok=True)
        raise


def load_app_config(path: Path) -> AppConfig:
    """Load the application config; a missing file yields an empty config.

    Raises:
        ConfigError: When the file is unreadable, not JSON, or has the wrong shape.
    """
    try:
        payload = load_json(path)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"failed to read config file {path}: {exc}") from exc
    if payload is None:
        return AppConfig()
    try:
        return AppConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(
            f"invalid config file {path}: {exc}",
            recovery_hint="expected keys: githubAccessToken, gitSshKeyPath",
        ) from exc
