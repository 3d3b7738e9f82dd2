"""Patch stage: apply the change set inside a local checkout."""

from __future__ import annotations

from .. import log as batchpatch_log
from ..context import PatchSource
from ..errors import GitCommandError
from ..exec import ProcessExecutor
from ..git import GitClient
from ..models import LocalRepo, PatchedRepo


def run_patch(
    record: LocalRepo | PatchedRepo,
    *,
    source: PatchSource,
    executor: ProcessExecutor,
    git: GitClient,
) -> PatchedRepo:
    """Apply ``source`` in the checkout and count the files it changed.

    A nonzero exit records ``success=False`` with the combined output. A clean
    exit records ``success=True`` and the number of changed files, which may
    be zero. Retrying a failed patch first resets the checkout to its base
    branch, discarding whatever the earlier attempt half-applied.
    """
    local = record.repo if isinstance(record, PatchedRepo) else record
    if local.is_failed:
        raise ValueError(f"{local.defn} has no usable checkout to patch")
    defn = local.defn

    if isinstance(record, PatchedRepo):
        batchpatch_log.debug(f"{defn}: resetting checkout before re-applying patch")
        try:
            git.reset_and_clean(local.local_path, defn.base_branch)
        except GitCommandError as exc:
            batchpatch_log.repo_warning(defn, f"failed to reset checkout: {exc.message}")
            return PatchedRepo(repo=local, changes=0, output=exc.message, success=False)

    batchpatch_log.info(f"Patching {defn} with {source}")
    outcome = executor.run(source.command(), cwd=local.local_path)
    if not outcome.success:
        batchpatch_log.repo_warning(defn, f"patch did not apply (exit {outcome.returncode})")
        batchpatch_log.debug(outcome.output)
        return PatchedRepo(repo=local, changes=0, output=outcome.output, success=False)

    try:
        changes = git.changed_file_count(local.local_path)
    except GitCommandError as exc:
        batchpatch_log.repo_warning(defn, f"unable to assess changes: {exc.message}")
        return PatchedRepo(repo=local, changes=0, output=exc.message, success=False)

    if changes == 0:
        batchpatch_log.repo_info(defn, "patch applied but changed nothing")
    else:
        batchpatch_log.repo_success(defn, f"patched successfully; {changes} files were updated")
    return PatchedRepo(repo=local, changes=changes, output=outcome.output, success=True)
