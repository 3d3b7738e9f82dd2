"""Push stage: publish the item's branch to its single remote."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from .. import log as batchpatch_log
from ..credentials import GitAuth
from ..errors import BatchpatchError, UnsupportedRemoteError
from ..git import GitClient
from ..models import BranchedRepo


def single_remote(git: GitClient, repo_dir: Path) -> str:
    """Return the repository's only remote.

    Raises:
        UnsupportedRemoteError: When there is not exactly one remote.
    """
    remotes = git.remotes(repo_dir)
    if len(remotes) != 1:
        raise UnsupportedRemoteError(
            f"Repository had {len(remotes)} remotes; "
            "we currently only support the repo having 1 remote"
        )
    return remotes[0]


def push_branch(
    record: BranchedRepo,
    *,
    git: GitClient,
    auths: Sequence[GitAuth] = (),
) -> BranchedRepo:
    """Set the branch upstream to itself and push it."""
    if not record.committed:
        raise ValueError(f"{record.defn} has nothing committed to push")
    if record.pushed:
        raise ValueError(f"{record.defn} is already pushed")

    defn = record.defn
    repo_dir = record.local_path
    try:
        remote = single_remote(git, repo_dir)
        git.set_upstream(repo_dir, record.branch_name, remote)
        batchpatch_log.info(f"Pushing {record.branch_name} of {defn} to {remote}")
        git.push(repo_dir, remote, record.branch_name, auths=auths)
    except BatchpatchError as exc:
        batchpatch_log.repo_warning(defn, f"push failed: {exc.message}")
        return record.model_copy(update={"last_error": exc.message})

    return record.model_copy(update={"pushed": True, "last_error": None})
