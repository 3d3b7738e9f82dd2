from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace

import pytest

from batchpatch import state as state_store
from batchpatch.commands import run as run_cmd
from batchpatch.errors import (
    GitCommandError,
    IdentityMissingError,
    InvalidArgumentsError,
    RepoListFormatError,
    RunAbortedError,
)
from batchpatch.models import PRdRepo
from tests.batchpatch.helpers import FakeGit, FakeGithub, fake_collaborators


@pytest.fixture
def home(tmp_path: Path) -> Path:
    path = tmp_path / "home"
    path.mkdir()
    (path / ".gitconfig").write_text(
        "[user]\n  name = Dev\n  email = dev@example.com\n", encoding="utf-8"
    )
    return path


def _args(tmp_path: Path, **overrides: object) -> SimpleNamespace:
    diff = tmp_path / "change.diff"
    diff.write_text("--- a/x\n+++ b/x\n", encoding="utf-8")
    repos = tmp_path / "repos.txt"
    if not repos.exists():
        repos.write_text("org/a\nhttps://github.com/org/b\n", encoding="utf-8")
    data: dict[str, object] = {
        "branch": "batch/update",
        "patch_file": diff,
        "script": None,
        "repo_list": repos,
        "state_file": tmp_path / "state.json",
        "config_file": tmp_path / "config.json",
        "message": None,
        "mode": "ssh",
        "workdir": tmp_path / "work",
        "strict": False,
        "pr_title": None,
        "pr_description": None,
    }
    data.update(overrides)
    return SimpleNamespace(**data)


def test_execute_bootstraps_from_list_and_runs_every_stage(tmp_path: Path, home: Path) -> None:
    github = FakeGithub()
    report = run_cmd.execute(
        _args(tmp_path, pr_title="Bump"),
        environ={},
        home=home,
        collaborators=fake_collaborators(FakeGit(), github=github),
    )

    assert report.completed == 2
    saved = state_store.load(tmp_path / "state.json")
    assert saved.pr_title == "Bump"
    assert all(isinstance(record, PRdRepo) for record in saved.repos)
    assert {request["title"] for request in github.session_obj.requests} == {"Bump"}


def test_existing_state_wins_over_repo_list(tmp_path: Path, home: Path) -> None:
    run_cmd.execute(
        _args(tmp_path), environ={}, home=home, collaborators=fake_collaborators(FakeGit())
    )
    (tmp_path / "other.txt").write_text("org/zzz\n", encoding="utf-8")

    report = run_cmd.execute(
        _args(tmp_path, repo_list=tmp_path / "other.txt"),
        environ={},
        home=home,
        collaborators=fake_collaborators(FakeGit()),
    )

    assert report.stages[0].eligible == 0
    names = [record.defn.name for record in state_store.load(tmp_path / "state.json").repos]
    assert names == ["a", "b"]


def test_pr_text_persists_across_runs(tmp_path: Path, home: Path) -> None:
    github = FakeGithub(token_present=True)
    first_args = _args(tmp_path, pr_title="Title", pr_description="Body")
    (tmp_path / "repos.txt").write_text("org/a\n", encoding="utf-8")
    git = FakeGit()
    git.fail("clone", "a", GitCommandError("offline"))
    with pytest.raises(RunAbortedError):
        run_cmd.execute(first_args, environ={}, home=home, collaborators=fake_collaborators(git))

    run_cmd.execute(
        _args(tmp_path),
        environ={},
        home=home,
        collaborators=fake_collaborators(FakeGit(), github=github),
    )

    assert github.session_obj.requests[0]["title"] == "Title"
    assert github.session_obj.requests[0]["body"] == "Body"


def test_no_repositories_is_fatal(tmp_path: Path, home: Path) -> None:
    with pytest.raises(InvalidArgumentsError, match="no repositories configured"):
        run_cmd.execute(
            _args(tmp_path, repo_list=None),
            environ={},
            home=home,
            collaborators=fake_collaborators(),
        )
    assert json.loads((tmp_path / "state.json").read_text(encoding="utf-8")) == {
        "data": {"repos": []}
    }


def test_strict_mode_rejects_bad_list(tmp_path: Path, home: Path) -> None:
    (tmp_path / "repos.txt").write_text("org/a\nbroken line\n", encoding="utf-8")

    with pytest.raises(RepoListFormatError, match="Repository list was not in the right format"):
        run_cmd.execute(
            _args(tmp_path, strict=True),
            environ={},
            home=home,
            collaborators=fake_collaborators(),
        )
    assert not (tmp_path / "state.json").exists()


def test_missing_identity_is_fatal(tmp_path: Path) -> None:
    empty_home = tmp_path / "nohome"
    empty_home.mkdir()
    with pytest.raises(IdentityMissingError):
        run_cmd.execute(
            _args(tmp_path), environ={}, home=empty_home, collaborators=fake_collaborators()
        )


def test_patch_source_must_be_exactly_one_existing_file(tmp_path: Path) -> None:
    diff = tmp_path / "a.diff"
    diff.write_text("", encoding="utf-8")
    script = tmp_path / "fix.sh"
    script.write_text("", encoding="utf-8")

    with pytest.raises(InvalidArgumentsError, match="mutually exclusive"):
        run_cmd.resolve_patch_source(diff, script)
    with pytest.raises(InvalidArgumentsError, match="no patch source"):
        run_cmd.resolve_patch_source(None, None)
    with pytest.raises(InvalidArgumentsError, match="does not exist"):
        run_cmd.resolve_patch_source(tmp_path / "missing.diff", None)
    assert run_cmd.resolve_patch_source(None, script).kind == "script"


def test_build_context_resolves_run_settings(tmp_path: Path, home: Path) -> None:
    (tmp_path / "config.json").write_text(
        json.dumps({"githubAccessToken": "tok"}), encoding="utf-8"
    )

    ctx = run_cmd.build_context(
        _args(tmp_path, mode="https", message="Custom message"),
        environ={"SSH_KEY": "/keys/env"},
        home=home,
    )

    assert ctx.mode == "https"
    assert ctx.branch_name == "batch/update"
    assert ctx.commit_message == "Custom message"
    assert ctx.ssh_key_env == "/keys/env"
    assert ctx.app_config.github_access_token == "tok"
    assert ctx.user.email == "dev@example.com"
    assert ctx.workdir == tmp_path / "work"
    assert ctx.patch_source.path.is_absolute()


def test_build_context_defaults_commit_message(tmp_path: Path, home: Path) -> None:
    ctx = run_cmd.build_context(_args(tmp_path, workdir=Path(".")), environ={}, home=home)
    assert ctx.commit_message == run_cmd.DEFAULT_COMMIT_MESSAGE
    assert ctx.ssh_key_env is None
    assert ctx.workdir == Path(".")


def test_run_batch_exits_with_message_on_fatal_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    def failing_execute(args: object) -> None:
        raise InvalidArgumentsError("no repositories configured", recovery_hint="pass --repo-list")

    monkeypatch.setattr(run_cmd, "execute", failing_execute)

    with pytest.raises(SystemExit) as excinfo:
        run_cmd.run_batch(_args(tmp_path))

    assert excinfo.value.code == 1
    err = capsys.readouterr().err
    assert "error: no repositories configured" in err
    assert "hint: pass --repo-list" in err
