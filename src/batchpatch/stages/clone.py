"""Clone stage: bring a remote repository onto local disk."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from .. import log as batchpatch_log
from .. import paths
from ..credentials import GitAuth
from ..errors import GitCommandError, GitPathExistsError, WorkspaceSetupError
from ..git import GitClient
from ..models import CloneMode, LocalRepo, RemoteRepo


def clone_destination(
    remote: RemoteRepo, *, workdir: Path, path_override: Path | None = None
) -> Path:
    if path_override is not None:
        return path_override
    return paths.clone_destination(workdir, remote.defn.owner, remote.defn.name)


def clone_repo(
    record: RemoteRepo | LocalRepo,
    *,
    git: GitClient,
    workdir: Path,
    mode: CloneMode,
    auths: Sequence[GitAuth] = (),
    path_override: Path | None = None,
) -> LocalRepo:
    """Clone the repository's base branch, or reuse an existing checkout.

    A destination that already holds the repository is reset and cleaned to
    the base branch instead. Clone and cleanup failures are recorded on the
    returned ``LocalRepo``.

    Raises:
        WorkspaceSetupError: When the destination directory cannot be created.
    """
    remote = record.remote if isinstance(record, LocalRepo) else record
    defn = remote.defn
    destination = clone_destination(remote, workdir=workdir, path_override=path_override)
    uri = defn.clone_uri(mode)
    branch = defn.base_branch

    batchpatch_log.info(f"Cloning {uri} into {destination}...")
    try:
        destination.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise WorkspaceSetupError(
            f"unable to create clone destination {destination}: {exc}"
        ) from exc

    try:
        git.clone(uri, destination, branch=branch, auths=auths)
    except GitPathExistsError as exc:
        batchpatch_log.repo_warning(defn, f"{exc.message}; reusing existing checkout")
        try:
            git.reset_and_clean(destination, branch)
        except GitCommandError as cleanup_exc:
            batchpatch_log.repo_warning(
                defn, f"failed to clean checkout: {cleanup_exc.message}"
            )
            return LocalRepo(
                remote=remote, local_path=destination, last_error=cleanup_exc.message
            )
    except GitCommandError as exc:
        batchpatch_log.repo_warning(defn, f"clone failed: {exc.message}")
        return LocalRepo(remote=remote, local_path=destination, last_error=exc.message)

    return LocalRepo(remote=remote, local_path=destination)
