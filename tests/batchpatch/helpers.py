# ruff: noqa: E402

from __future__ import annotations

import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from batchpatch.config import AppConfig
from batchpatch.context import PatchSource, RunContext
from batchpatch.errors import (
    BatchpatchError,
    GitBranchExistsError,
    GitPathExistsError,
    GithubApiError,
)
from batchpatch.exec import ProcessOutcome
from batchpatch.gitconfig import GitUser
from batchpatch.models import (
    BranchedRepo,
    LocalRepo,
    PatchedRepo,
    RemoteRepo,
    RepoDefn,
)
from batchpatch.pipeline import Collaborators

USER = GitUser(name="Dev", email="dev@example.com")


def remote(name: str, owner: str = "org") -> RemoteRepo:
    return RemoteRepo(defn=RepoDefn(owner=owner, name=name))


def local(name: str, workdir: Path, *, error: str | None = None) -> LocalRepo:
    return LocalRepo(remote=remote(name), local_path=workdir / "org" / name, last_error=error)


def patched(name: str, workdir: Path, *, changes: int = 2, success: bool = True) -> PatchedRepo:
    return PatchedRepo(
        repo=local(name, workdir),
        changes=changes,
        output="patching file README.md\n",
        success=success,
    )


def branched(
    name: str,
    workdir: Path,
    *,
    branch: str = "batch/update",
    committed: bool = False,
    pushed: bool = False,
    error: str | None = None,
) -> BranchedRepo:
    return BranchedRepo(
        patched=patched(name, workdir),
        branch_name=branch,
        committed=committed,
        pushed=pushed,
        last_error=error,
    )


def make_context(tmp_path: Path, **overrides: object) -> RunContext:
    diff = tmp_path / "change.diff"
    if not diff.exists():
        diff.write_text("--- a/README.md\n+++ b/README.md\n", encoding="utf-8")
    data: dict[str, object] = {
        "home": tmp_path / "home",
        "workdir": tmp_path / "work",
        "mode": "ssh",
        "branch_name": "batch/update",
        "patch_source": PatchSource(kind="diff", path=diff),
        "user": USER,
        "app_config": AppConfig(github_access_token="token"),
    }
    data.update(overrides)
    return RunContext(**data)  # type: ignore[arg-type]


@dataclass
class FakeGit:
    """In-memory stand-in for ``GitClient`` keyed by repository directory name.

    ``branches`` point at the checkout's HEAD; ``foreign_branches`` exist
    but carry commits of their own.
    """

    failures: dict[tuple[str, str], BatchpatchError] = field(default_factory=dict)
    changes: dict[str, int] = field(default_factory=dict)
    remote_names: dict[str, list[str]] = field(default_factory=dict)
    cloned: set[str] = field(default_factory=set)
    branches: set[tuple[str, str]] = field(default_factory=set)
    foreign_branches: set[tuple[str, str]] = field(default_factory=set)
    calls: list[tuple[str, str]] = field(default_factory=list)

    def _enter(self, op: str, repo_dir: Path) -> None:
        self.calls.append((op, repo_dir.name))
        error = self.failures.get((op, repo_dir.name))
        if error is not None:
            raise error

    def fail(self, op: str, name: str, error: BatchpatchError) -> None:
        self.failures[(op, name)] = error

    def clone(self, uri: str, destination: Path, *, branch: str, auths: object = ()) -> None:
        if destination.name in self.cloned:
            self.calls.append(("clone", destination.name))
            raise GitPathExistsError(
                f"fatal: destination path '{destination}' already exists and is not an empty directory."
            )
        self._enter("clone", destination)
        self.cloned.add(destination.name)

    def reset_and_clean(self, repo_dir: Path, branch: str) -> None:
        self._enter("reset_and_clean", repo_dir)

    def changed_file_count(self, repo_dir: Path) -> int:
        self._enter("changed_file_count", repo_dir)
        return self.changes.get(repo_dir.name, 1)

    def branch_exists(self, repo_dir: Path, branch: str) -> bool:
        self._enter("branch_exists", repo_dir)
        key = (repo_dir.name, branch)
        return key in self.branches or key in self.foreign_branches

    def branch_at_head(self, repo_dir: Path, branch: str) -> bool:
        self._enter("branch_at_head", repo_dir)
        return (repo_dir.name, branch) in self.branches

    def create_branch(self, repo_dir: Path, branch: str) -> None:
        self._enter("create_branch", repo_dir)
        key = (repo_dir.name, branch)
        if key in self.branches or key in self.foreign_branches:
            raise GitBranchExistsError(f"fatal: a branch named '{branch}' already exists")
        self.branches.add((repo_dir.name, branch))

    def commit_index(self, repo_dir: Path, branch: str, *, message: str, user: GitUser) -> str:
        self._enter("commit_index", repo_dir)
        return "0123abcd"

    def remotes(self, repo_dir: Path) -> list[str]:
        self._enter("remotes", repo_dir)
        return self.remote_names.get(repo_dir.name, ["origin"])

    def set_upstream(self, repo_dir: Path, branch: str, remote: str) -> None:
        self._enter("set_upstream", repo_dir)

    def push(self, repo_dir: Path, remote: str, branch: str, *, auths: object = ()) -> None:
        self._enter("push", repo_dir)

    def ops(self, op: str) -> list[str]:
        return [name for called, name in self.calls if called == op]


@dataclass
class FakeExecutor:
    outcomes: dict[str, ProcessOutcome] = field(default_factory=dict)
    calls: list[tuple[list[str], Path]] = field(default_factory=list)

    def run(self, argv: list[str], *, cwd: Path) -> ProcessOutcome:
        self.calls.append((argv, cwd))
        return self.outcomes.get(cwd.name, ProcessOutcome(returncode=0, output="patched\n"))


@dataclass
class FakeSession:
    failing: set[str] = field(default_factory=set)
    requests: list[dict[str, str]] = field(default_factory=list)

    def create_pull_request(self, **request: str) -> str:
        self.requests.append(request)
        if request["name"] in self.failing:
            raise GithubApiError("GitHub API returned 422: Validation Failed", status_code=422)
        return f"https://github.com/{request['owner']}/{request['name']}/pull/1"


@dataclass
class FakeGithub:
    session_obj: FakeSession = field(default_factory=FakeSession)
    token_present: bool = True
    sessions_opened: int = 0

    def available(self) -> bool:
        return self.token_present

    @contextmanager
    def session(self) -> Iterator[FakeSession]:
        self.sessions_opened += 1
        yield self.session_obj


def fake_collaborators(
    git: FakeGit | None = None,
    executor: FakeExecutor | None = None,
    github: FakeGithub | None = None,
) -> Collaborators:
    return Collaborators(
        git=git or FakeGit(),  # type: ignore[arg-type]
        executor=executor or FakeExecutor(),  # type: ignore[arg-type]
        github=github or FakeGithub(),  # type: ignore[arg-type]
    )
