"""Git operations used by the batchpatch stages.

Every operation drives the ``git`` executable through the typed command
runner and raises :class:`~batchpatch.errors.GitCommandError` with git's own
message on failure.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from pathlib import Path
from typing import Mapping

from . import exec as exec_util
from . import log as batchpatch_log
from .credentials import GitAuth, is_auth_failure
from .errors import GitBranchExistsError, GitCommandError, GitPathExistsError
from .gitconfig import GitUser

_PATH_EXISTS_MARKER = "already exists and is not an empty directory"
_BRANCH_EXISTS_MARKER = "already exists"
_NO_AUTH = (GitAuth(kind="helper"),)


def git_command(args: list[str], *, git_path: str | None = None) -> list[str]:
    """Build a git command using an optional executable path.

    Example:
        >>> git_command(["status"], git_path="/usr/local/bin/git")
        ['/usr/local/bin/git', 'status']
    """
    resolved = git_path.strip() if isinstance(git_path, str) else ""
    if not resolved:
        resolved = "git"
    return [resolved, *args]


def branch_ref(branch: str) -> str:
    """Return the full local ref name for a branch.

    Example:
        >>> branch_ref("batchpatch/update")
        'refs/heads/batchpatch/update'
    """
    return f"refs/heads/{branch}"


def signature_env(user: GitUser) -> dict[str, str]:
    """Return author and committer environment variables for a git identity."""
    return {
        "GIT_AUTHOR_NAME": user.name,
        "GIT_AUTHOR_EMAIL": user.email,
        "GIT_COMMITTER_NAME": user.name,
        "GIT_COMMITTER_EMAIL": user.email,
    }


class GitClient:
    """Typed adapter over the git CLI.

    Args:
        git_path: Git executable (default ``git``).
        runner: Command runner; defaults to the subprocess runner.
        base_env: Environment for git processes that need extra variables.
    """

    def __init__(
        self,
        *,
        git_path: str | None = None,
        runner: exec_util.CommandRunner | None = None,
        base_env: Mapping[str, str] | None = None,
    ) -> None:
        self.git_path = git_path
        self._runner = runner
        self._base_env = base_env

    def _env(self, extra: Mapping[str, str] | None) -> Mapping[str, str] | None:
        if not extra:
            return None
        base = self._base_env if self._base_env is not None else os.environ
        merged = dict(base)
        merged.update(extra)
        return merged

    def _run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        auth: GitAuth | None = None,
    ) -> exec_util.CommandResult:
        prefix = list(auth.config_args) if auth else []
        extra_env = dict(env or {})
        if auth is not None:
            extra_env.update(auth.env)
            extra_env["GIT_TERMINAL_PROMPT"] = "0"
        argv = git_command([*prefix, *args], git_path=self.git_path)
        batchpatch_log.trace(f"git {' '.join(args)}" + (f" (in {cwd})" if cwd else ""))
        try:
            result = exec_util.run_with_runner(
                exec_util.CommandRequest(argv=tuple(argv), cwd=cwd, env=self._env(extra_env)),
                runner=self._runner,
            )
        except OSError as exc:
            raise GitCommandError(f"unable to run git: {exc}") from exc
        if result is None:
            raise GitCommandError("missing required command: git")
        return result

    def _check(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> str:
        result = self._run(args, cwd=cwd, env=env)
        if not result.ok:
            raise GitCommandError(result.failure_detail())
        return result.stdout

    def _run_authenticated(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None,
        auths: Sequence[GitAuth],
    ) -> exec_util.CommandResult:
        attempts = tuple(auths) or _NO_AUTH
        result: exec_util.CommandResult | None = None
        for index, auth in enumerate(attempts):
            result = self._run(args, cwd=cwd, auth=auth)
            if result.ok:
                return result
            remaining = index + 1 < len(attempts)
            if remaining and is_auth_failure(result.failure_detail()):
                batchpatch_log.debug(
                    f"git {args[0]} rejected {auth.kind} credentials; trying next method"
                )
                continue
            break
        assert result is not None
        return result

    def clone(
        self,
        uri: str,
        destination: Path,
        *,
        branch: str,
        auths: Sequence[GitAuth] = (),
    ) -> None:
        """Clone ``branch`` of ``uri`` into ``destination``.

        Raises:
            GitPathExistsError: When the destination already holds content.
            GitCommandError: For any other clone failure.
        """
        result = self._run_authenticated(
            ["clone", "--branch", branch, "--", uri, str(destination)],
            cwd=None,
            auths=auths,
        )
        if result.ok:
            return
        detail = result.failure_detail()
        if _PATH_EXISTS_MARKER in detail:
            raise GitPathExistsError(detail)
        raise GitCommandError(detail)

    def reset_and_clean(self, repo_dir: Path, branch: str) -> None:
        """Force the working tree back to a pristine checkout of ``branch``."""
        self._check(["checkout", "--force", branch], cwd=repo_dir)
        self._check(["reset", "--hard", branch], cwd=repo_dir)
        self._check(["clean", "-fd"], cwd=repo_dir)

    def changed_file_count(self, repo_dir: Path) -> int:
        """Count files that differ from HEAD, including untracked ones."""
        output = self._check(
            ["status", "--porcelain", "--untracked-files=all"], cwd=repo_dir
        )
        return sum(1 for line in output.splitlines() if line.strip())

    def branch_exists(self, repo_dir: Path, branch: str) -> bool:
        result = self._run(
            ["show-ref", "--verify", "--quiet", branch_ref(branch)], cwd=repo_dir
        )
        if result.returncode == 0:
            return True
        if result.returncode == 1:
            return False
        raise GitCommandError(result.failure_detail())

    def branch_at_head(self, repo_dir: Path, branch: str) -> bool:
        """Return whether ``branch`` points at the checkout's HEAD commit."""
        output = self._check(
            ["rev-parse", f"{branch_ref(branch)}^{{commit}}", "HEAD^{commit}"],
            cwd=repo_dir,
        )
        tips = output.split()
        return len(tips) == 2 and tips[0] == tips[1]

    def create_branch(self, repo_dir: Path, branch: str) -> None:
        """Create ``branch`` at the current HEAD without checking it out.

        Raises:
            GitBranchExistsError: When the branch name is already taken.
        """
        result = self._run(["branch", branch, "HEAD"], cwd=repo_dir)
        if result.ok:
            return
        detail = result.failure_detail()
        if _BRANCH_EXISTS_MARKER in detail:
            raise GitBranchExistsError(detail)
        raise GitCommandError(detail)

    def commit_index(
        self, repo_dir: Path, branch: str, *, message: str, user: GitUser
    ) -> str:
        """Commit every working-tree change onto ``branch`` and leave HEAD alone.

        The tree is built from the index and committed on top of the branch
        tip; the branch ref is then advanced and the working tree reset so it
        matches HEAD (still the base branch) again.

        Returns:
            The new commit id.
        """
        ref = branch_ref(branch)
        self._check(["add", "--all"], cwd=repo_dir)
        tree = self._check(["write-tree"], cwd=repo_dir).strip()
        parent = self._check(["rev-parse", "--verify", f"{ref}^{{commit}}"], cwd=repo_dir).strip()
        commit = self._check(
            ["commit-tree", tree, "-p", parent, "-m", message],
            cwd=repo_dir,
            env=signature_env(user),
        ).strip()
        self._check(["update-ref", ref, commit, parent], cwd=repo_dir)
        self._check(["reset", "--hard", "--quiet"], cwd=repo_dir)
        self._check(["clean", "-fd", "--quiet"], cwd=repo_dir)
        return commit

    def remotes(self, repo_dir: Path) -> list[str]:
        output = self._check(["remote"], cwd=repo_dir)
        return [line.strip() for line in output.splitlines() if line.strip()]

    def set_upstream(self, repo_dir: Path, branch: str, remote: str) -> None:
        """Point ``branch`` at the same-named branch on ``remote``."""
        self._check(["config", f"branch.{branch}.remote", remote], cwd=repo_dir)
        self._check(["config", f"branch.{branch}.merge", branch_ref(branch)], cwd=repo_dir)

    def push(
        self,
        repo_dir: Path,
        remote: str,
        branch: str,
        *,
        auths: Sequence[GitAuth] = (),
    ) -> None:
        ref = branch_ref(branch)
        result = self._run_authenticated(
            ["push", remote, f"{ref}:{ref}"], cwd=repo_dir, auths=auths
        )
        if not result.ok:
            raise GitCommandError(result.failure_detail())
