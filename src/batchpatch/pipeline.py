"""Resumable stage pipeline over the batch state.

Each stage pass maps every record in order: eligible records go through the
stage function, all others pass through unchanged. The state is
checkpointed after every pass, then the run aborts if no record has made it
past the stage.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from . import log as batchpatch_log
from . import state as state_store
from .context import RunContext
from .errors import RunAbortedError
from .exec import ProcessExecutor
from .git import GitClient
from .github import GithubClient
from .models import (
    BatchState,
    BranchedRepo,
    LifecycleRecord,
    LocalRepo,
    PatchedRepo,
    RemoteRepo,
    stages_passed,
)
from .stages import (
    clone_repo,
    commit_branch,
    create_branch,
    open_pull_request,
    push_branch,
    run_patch,
)

StageFn = Callable[[LifecycleRecord], LifecycleRecord]
StageOpener = Callable[[], AbstractContextManager[StageFn]]
Eligibility = Callable[[LifecycleRecord], bool]

STAGE_NAMES = ("clone", "patch", "branch", "commit", "push", "pr")


def clone_eligible(record: LifecycleRecord) -> bool:
    if isinstance(record, RemoteRepo):
        return True
    return isinstance(record, LocalRepo) and record.is_failed


def patch_eligible(record: LifecycleRecord) -> bool:
    if isinstance(record, LocalRepo):
        return not record.is_failed
    return isinstance(record, PatchedRepo) and not record.success


def branch_eligible(record: LifecycleRecord) -> bool:
    if isinstance(record, PatchedRepo):
        return record.has_changes
    if isinstance(record, BranchedRepo):
        return record.is_failed and not record.committed
    return False


def commit_eligible(record: LifecycleRecord) -> bool:
    return (
        isinstance(record, BranchedRepo)
        and not record.is_failed
        and not record.committed
    )


def push_eligible(record: LifecycleRecord) -> bool:
    return isinstance(record, BranchedRepo) and record.committed and not record.pushed


def pr_eligible(record: LifecycleRecord) -> bool:
    return isinstance(record, BranchedRepo) and record.committed and record.pushed


@dataclass(frozen=True)
class Stage:
    """One pipeline stage.

    ``open`` returns a context manager yielding the per-record function, so
    a stage can hold a resource (an HTTP session) for the length of its pass.
    """

    name: str
    index: int
    eligible: Eligibility
    open: StageOpener


@dataclass(frozen=True)
class StageReport:
    stage: str
    eligible: int
    progressed: int
    failed: int
    survivors: int

    def summary(self) -> str:
        return f"{self.stage}: {self.progressed} progressed; {self.failed} failed"


@dataclass
class RunReport:
    stages: list[StageReport] = field(default_factory=list)

    @property
    def completed(self) -> int:
        return self.stages[-1].survivors if self.stages else 0


@dataclass(frozen=True)
class Collaborators:
    """External services the stages delegate to."""

    git: GitClient
    executor: ProcessExecutor
    github: GithubClient


def survivor_count(records: list[LifecycleRecord], stage_index: int) -> int:
    """Count records that have passed the stage at ``stage_index`` (0-based)."""
    return sum(1 for record in records if stages_passed(record) >= stage_index + 1)


@contextmanager
def _plain(fn: StageFn) -> Iterator[StageFn]:
    yield fn


def build_stages(
    ctx: RunContext,
    collaborators: Collaborators,
    *,
    pr_title: str | None = None,
    pr_description: str | None = None,
) -> list[Stage]:
    """Bind each stage function to the run context and collaborators."""
    git = collaborators.git
    auths = ctx.credential_resolver().attempts()

    def clone(record: LifecycleRecord) -> LifecycleRecord:
        return clone_repo(
            record,  # type: ignore[arg-type]
            git=git,
            workdir=ctx.workdir,
            mode=ctx.mode,
            auths=auths,
        )

    def patch(record: LifecycleRecord) -> LifecycleRecord:
        return run_patch(
            record,  # type: ignore[arg-type]
            source=ctx.patch_source,
            executor=collaborators.executor,
            git=git,
        )

    def branch(record: LifecycleRecord) -> LifecycleRecord:
        return create_branch(record, branch_name=ctx.branch_name, git=git)  # type: ignore[arg-type]

    def commit(record: LifecycleRecord) -> LifecycleRecord:
        return commit_branch(
            record,  # type: ignore[arg-type]
            message=ctx.commit_message,
            user=ctx.user,
            git=git,
        )

    def push(record: LifecycleRecord) -> LifecycleRecord:
        return push_branch(record, git=git, auths=auths)  # type: ignore[arg-type]

    @contextmanager
    def open_pr() -> Iterator[StageFn]:
        if not collaborators.github.available():
            batchpatch_log.warning(
                "no GitHub access token configured; pull requests cannot be opened"
            )
        with collaborators.github.session() as session:

            def pull_request(record: LifecycleRecord) -> LifecycleRecord:
                return open_pull_request(
                    record,  # type: ignore[arg-type]
                    session=session,
                    title=pr_title,
                    description=pr_description,
                )

            yield pull_request

    functions: list[tuple[Eligibility, StageOpener]] = [
        (clone_eligible, lambda: _plain(clone)),
        (patch_eligible, lambda: _plain(patch)),
        (branch_eligible, lambda: _plain(branch)),
        (commit_eligible, lambda: _plain(commit)),
        (push_eligible, lambda: _plain(push)),
        (pr_eligible, open_pr),
    ]
    return [
        Stage(name=name, index=index, eligible=eligible, open=opener)
        for index, (name, (eligible, opener)) in enumerate(zip(STAGE_NAMES, functions))
    ]


def run_stage(
    stage: Stage, records: list[LifecycleRecord]
) -> tuple[list[LifecycleRecord], StageReport]:
    """Apply one stage to every eligible record, passing the rest through.

    The output has the same length and order as ``records``.
    """
    selected = [stage.eligible(record) for record in records]
    eligible = sum(selected)
    batchpatch_log.stage_started(stage.name, eligible)
    output: list[LifecycleRecord] = []
    progressed = 0
    with stage.open() as apply:
        for record, is_eligible in zip(records, selected):
            if not is_eligible:
                output.append(record)
                continue
            result = apply(record)
            if stages_passed(result) >= stage.index + 1:
                progressed += 1
            output.append(result)
    report = StageReport(
        stage=stage.name,
        eligible=eligible,
        progressed=progressed,
        failed=eligible - progressed,
        survivors=survivor_count(output, stage.index),
    )
    return output, report


def run_pipeline(
    state: BatchState,
    *,
    state_path: Path,
    stages: list[Stage],
) -> tuple[BatchState, RunReport]:
    """Run every stage in order, checkpointing after each pass.

    Raises:
        RunAbortedError: When a stage pass leaves no surviving records. The
            state has already been checkpointed at that point.
    """
    report = RunReport()
    for stage in stages:
        records, stage_report = run_stage(stage, state.repos)
        state = state.with_repos(records)
        state_store.write(state_path, state)
        report.stages.append(stage_report)
        batchpatch_log.stage_finished(stage_report.summary(), failed=stage_report.failed)
        if stage_report.survivors == 0:
            batchpatch_log.error(f"Run aborted after the {stage.name} stage")
            raise RunAbortedError(
                stage.name,
                f"no repositories survived the {stage.name} stage",
                recovery_hint=f"inspect {state_path} for per-repository errors and re-run",
            )
    batchpatch_log.success(
        f"Run complete: {report.completed} of {len(state.repos)} repositories have open pull requests"
    )
    return state, report
