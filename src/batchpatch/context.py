"""Resolved configuration for one batchpatch run."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Mapping

from .config import AppConfig
from .credentials import CredentialResolver
from .gitconfig import GitUser
from .models import CloneMode

PatchKind = Literal["diff", "script"]

DEFAULT_COMMIT_MESSAGE = "Batchpatch applied changes"
DEFAULT_PR_TITLE = "(chore): Batchpatch operations"
DEFAULT_PR_DESCRIPTION = (
    "Batchpatch applied some operations, please see the commit list for details"
)


def _has_shebang(path: Path) -> bool:
    try:
        with path.open("rb") as handle:
            return handle.read(2) == b"#!"
    except OSError:
        return False


@dataclass(frozen=True)
class PatchSource:
    """A diff file or a script to apply inside every checkout."""

    kind: PatchKind
    path: Path

    def __str__(self) -> str:
        return f"{self.kind} {self.path}"

    def command(self) -> list[str]:
        """Return the argv that applies this source in a repository checkout.

        Scripts run directly only when executable and starting with ``#!``;
        anything else goes through ``sh``.
        """
        if self.kind == "diff":
            return ["patch", "-t", "--forward", "-p1", "-i", str(self.path)]
        if os.access(self.path, os.X_OK) and _has_shebang(self.path):
            return [str(self.path)]
        return ["sh", str(self.path)]


@dataclass(frozen=True)
class RunContext:
    """Everything a run needs, resolved once up front and passed down.

    Stage functions read paths, mode and identity from here instead of the
    process environment.
    """

    home: Path
    workdir: Path
    mode: CloneMode
    branch_name: str
    patch_source: PatchSource
    user: GitUser
    app_config: AppConfig = field(default_factory=AppConfig)
    commit_message: str = DEFAULT_COMMIT_MESSAGE
    ssh_key_env: str | None = None
    git_path: str | None = None
    environ: Mapping[str, str] | None = None

    def credential_resolver(self) -> CredentialResolver:
        return CredentialResolver(
            self.app_config,
            self.mode,
            home=self.home,
            ssh_key_env=self.ssh_key_env,
        )
