"""Implementation for the ``batchpatch run`` command."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

from .. import log as batchpatch_log
from .. import paths, repo_list
from .. import state as state_store
from ..config import load_app_config
from ..context import DEFAULT_COMMIT_MESSAGE, PatchSource, RunContext
from ..errors import BatchpatchError, InvalidArgumentsError, StateNotFoundError
from ..exec import ProcessExecutor
from ..git import GitClient
from ..github import GithubClient
from ..gitconfig import require_git_user
from ..io import die, say
from ..models import BatchState, parse_clone_mode
from ..pipeline import Collaborators, RunReport, build_stages, run_pipeline


def _optional_text(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _optional_path(value: object) -> Path | None:
    if isinstance(value, Path):
        return value.expanduser()
    text = _optional_text(value)
    return Path(text).expanduser() if text else None


def resolve_patch_source(patch_file: Path | None, script: Path | None) -> PatchSource:
    """Pick the single patch source given on the command line.

    Raises:
        InvalidArgumentsError: When both or neither are given, or the file is missing.
    """
    if patch_file is not None and script is not None:
        raise InvalidArgumentsError(
            "--patch-file and --script are mutually exclusive",
            recovery_hint="pass exactly one of --patch-file or --script",
        )
    if patch_file is not None:
        source = PatchSource(kind="diff", path=patch_file)
    elif script is not None:
        source = PatchSource(kind="script", path=script)
    else:
        raise InvalidArgumentsError(
            "no patch source given",
            recovery_hint="pass --patch-file DIFF or --script SCRIPT",
        )
    if not source.path.is_file():
        raise InvalidArgumentsError(f"{source.kind} file does not exist: {source.path}")
    return PatchSource(kind=source.kind, path=source.path.resolve())


def bootstrap_state(
    state_path: Path, list_path: Path | None, *, fault_tolerant: bool
) -> BatchState:
    """Load the state file, or seed a new one from the repository list.

    An existing state file always wins over the list.

    Raises:
        InvalidArgumentsError: When no repositories end up configured.
    """
    try:
        state = state_store.load(state_path)
        if list_path is not None:
            batchpatch_log.warning(
                f"state file {state_path} already exists; ignoring repository list {list_path}"
            )
    except StateNotFoundError:
        if list_path is None:
            state = state_store.create(state_path)
        else:
            batchpatch_log.info(f"Bootstrapping state from {list_path}...")
            state = repo_list.read_repo_list(list_path, fault_tolerant=fault_tolerant)
            state_store.write(state_path, state)

    if not state.repos:
        raise InvalidArgumentsError(
            "no repositories configured",
            recovery_hint="pass --repo-list with one owner/name per line",
        )
    batchpatch_log.info(f"{len(state.repos)} repositories in batch")
    return state


def build_context(
    args: object,
    *,
    environ: Mapping[str, str],
    home: Path,
) -> RunContext:
    """Resolve every run-wide setting once, from arguments and environment.

    Raises:
        InvalidArgumentsError: For missing or conflicting arguments.
        IdentityMissingError: When no git identity is configured.
        ConfigError: When the app config cannot be read.
    """
    branch = _optional_text(getattr(args, "branch", None))
    if branch is None:
        raise InvalidArgumentsError("a branch name is required (--branch)")
    source = resolve_patch_source(
        _optional_path(getattr(args, "patch_file", None)),
        _optional_path(getattr(args, "script", None)),
    )
    config_path = _optional_path(getattr(args, "config_file", None)) or paths.default_config_path()
    app_config = load_app_config(config_path)
    user = require_git_user(home)
    workdir = _optional_path(getattr(args, "workdir", None)) or Path(".")
    return RunContext(
        home=home,
        workdir=workdir,
        mode=parse_clone_mode(getattr(args, "mode", None)),
        branch_name=branch,
        patch_source=source,
        user=user,
        app_config=app_config,
        commit_message=_optional_text(getattr(args, "message", None)) or DEFAULT_COMMIT_MESSAGE,
        ssh_key_env=_optional_text(environ.get("SSH_KEY")),
        environ=environ,
    )


def default_collaborators(ctx: RunContext) -> Collaborators:
    return Collaborators(
        git=GitClient(git_path=ctx.git_path, base_env=ctx.environ),
        executor=ProcessExecutor(),
        github=GithubClient(ctx.app_config.github_access_token),
    )


def execute(
    args: object,
    *,
    environ: Mapping[str, str] | None = None,
    home: Path | None = None,
    collaborators: Collaborators | None = None,
) -> RunReport:
    """Run the whole batch described by ``args`` and return the stage report.

    Raises:
        BatchpatchError: For every fatal condition.
    """
    resolved_environ = dict(os.environ) if environ is None else dict(environ)
    ctx = build_context(args, environ=resolved_environ, home=home or Path.home())
    state_path = (
        _optional_path(getattr(args, "state_file", None)) or paths.default_state_path()
    )
    state = bootstrap_state(
        state_path,
        _optional_path(getattr(args, "repo_list", None)),
        fault_tolerant=not bool(getattr(args, "strict", False)),
    )

    pr_title = _optional_text(getattr(args, "pr_title", None))
    pr_description = _optional_text(getattr(args, "pr_description", None))
    if pr_title or pr_description:
        state = state.model_copy(
            update={
                "pr_title": pr_title or state.pr_title,
                "pr_description": pr_description or state.pr_description,
            }
        )
        state_store.write(state_path, state)

    stages = build_stages(
        ctx,
        collaborators or default_collaborators(ctx),
        pr_title=state.pr_title,
        pr_description=state.pr_description,
    )
    _state, report = run_pipeline(state, state_path=state_path, stages=stages)
    return report


def run_batch(args: object) -> None:
    """Apply the patch across every repository in the batch."""
    try:
        report = execute(args)
    except BatchpatchError as exc:
        message = exc.message
        if exc.recovery_hint:
            message = f"{message}\n  hint: {exc.recovery_hint}"
        die(message)
    for stage_report in report.stages:
        say(stage_report.summary())
