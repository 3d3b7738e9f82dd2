"""Commit stage: record the patched tree on the item's branch."""

from __future__ import annotations

from .. import log as batchpatch_log
from ..errors import GitCommandError
from ..git import GitClient
from ..gitconfig import GitUser
from ..models import BranchedRepo


def commit_branch(
    record: BranchedRepo,
    *,
    message: str,
    user: GitUser,
    git: GitClient,
) -> BranchedRepo:
    """Commit the working-tree changes onto the record's branch.

    Raises:
        ValueError: When the record carries a live error or is already
            committed; those must go back through the branch stage first.
    """
    if record.is_failed:
        raise ValueError(f"{record.defn} has a live error; re-branch before committing")
    if record.committed:
        raise ValueError(f"{record.defn} is already committed")

    defn = record.defn
    batchpatch_log.info(f"Committing changes to {record.branch_name} on {defn}")
    try:
        commit = git.commit_index(
            record.local_path, record.branch_name, message=message, user=user
        )
    except GitCommandError as exc:
        batchpatch_log.repo_warning(defn, f"commit failed: {exc.message}")
        return record.model_copy(update={"last_error": exc.message})

    batchpatch_log.debug(f"{defn}: committed {commit}")
    return record.model_copy(update={"committed": True, "last_error": None})
