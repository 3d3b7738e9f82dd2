"""Per-item stage functions for the batchpatch pipeline."""

from .branch import create_branch
from .clone import clone_repo
from .commit import commit_branch
from .patch import run_patch
from .pull_request import open_pull_request
from .push import push_branch

__all__ = [
    "clone_repo",
    "commit_branch",
    "create_branch",
    "open_pull_request",
    "push_branch",
    "run_patch",
]
