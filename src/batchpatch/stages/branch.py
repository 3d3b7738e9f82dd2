"""Branch stage: create the run's branch at the patched HEAD."""

from __future__ import annotations

from .. import log as batchpatch_log
from ..errors import GitBranchExistsError, GitCommandError
from ..git import GitClient
from ..models import BranchedRepo, PatchedRepo


def _collision_message(branch_name: str, detail: str) -> str:
    return (
        f"branch {branch_name!r} already exists; choose a new branch name "
        f"for this batch ({detail})"
    )


def create_branch(
    record: PatchedRepo | BranchedRepo,
    *,
    branch_name: str,
    git: GitClient,
) -> BranchedRepo:
    """Create a branch for a patched repository, or retry a failed one.

    A retried ``BranchedRepo`` keeps its own branch name. An existing branch
    is only reused on retry when its tip is still the checkout's HEAD, which
    is where this item would have created it. A branch carrying other
    commits stays a collision until it is removed.
    """
    if isinstance(record, BranchedRepo):
        if record.committed:
            raise ValueError(f"{record.defn} is already committed; branch is settled")
        patched = record.patched
        name = record.branch_name
        retry = True
    else:
        if not record.has_changes:
            raise ValueError(f"{record.defn} has no successful changes to branch")
        patched = record
        name = branch_name
        retry = False

    defn = patched.defn
    repo_dir = patched.local_path
    batchpatch_log.info(f"Creating branch {name} on {defn}")
    try:
        if retry and git.branch_exists(repo_dir, name):
            if not git.branch_at_head(repo_dir, name):
                raise GitBranchExistsError(f"{name} points at a different commit")
            batchpatch_log.debug(f"{defn}: reusing branch {name} at HEAD")
        else:
            git.create_branch(repo_dir, name)
    except GitBranchExistsError as exc:
        message = _collision_message(name, exc.message)
        batchpatch_log.repo_warning(defn, message)
        return BranchedRepo(patched=patched, branch_name=name, last_error=message)
    except GitCommandError as exc:
        batchpatch_log.repo_warning(defn, f"branch creation failed: {exc.message}")
        return BranchedRepo(patched=patched, branch_name=name, last_error=exc.message)

    return BranchedRepo(patched=patched, branch_name=name)
