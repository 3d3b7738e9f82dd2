"""Open-PR stage: raise a pull request for a pushed branch."""

from __future__ import annotations

from .. import log as batchpatch_log
from ..context import DEFAULT_PR_DESCRIPTION, DEFAULT_PR_TITLE
from ..errors import GithubApiError
from ..github import PullRequestOpener
from ..models import BranchedRepo, PRdRepo


def open_pull_request(
    record: BranchedRepo,
    *,
    session: PullRequestOpener,
    title: str | None = None,
    description: str | None = None,
) -> BranchedRepo | PRdRepo:
    """Open a PR from the record's branch into its base branch.

    Failures keep the ``BranchedRepo`` (with its committed and pushed flags)
    and record the error, so only this step is retried.
    """
    if not (record.committed and record.pushed):
        raise ValueError(f"{record.defn} must be committed and pushed before opening a PR")

    defn = record.defn
    batchpatch_log.info(f"Creating pull request for pushed branch {record.branch_name} on {defn}")
    try:
        url = session.create_pull_request(
            owner=defn.owner,
            name=defn.name,
            base=defn.base_branch,
            head=record.branch_name,
            title=title or DEFAULT_PR_TITLE,
            body=description or DEFAULT_PR_DESCRIPTION,
        )
    except GithubApiError as exc:
        batchpatch_log.repo_warning(defn, f"unable to open pull request: {exc.message}")
        return record.model_copy(update={"last_error": exc.message})

    batchpatch_log.repo_success(defn, f"opened {url}")
    return PRdRepo(branched=record.model_copy(update={"last_error": None}), url=url)
