from pathlib import Path

import pytest

from batchpatch.errors import IdentityMissingError
from batchpatch.gitconfig import (
    GitConfig,
    GitConfigParser,
    GitUser,
    load_users_git_config,
    require_git_user,
)

GITCONFIG = """\
# global settings
[core]
    editor = vim
[user]
    name = Old Name
    email = dev@example.com
    signingKey = ABCDEF12
[remote "origin"]
    url = git@github.com:org/repo
[User]
    ; later values win
    name = "Dev Person"
"""


def test_parser_reads_sections_subsections_and_comments() -> None:
    parser = GitConfigParser()
    for line in GITCONFIG.splitlines():
        parser.line(line)

    assert parser.get("core", "editor") == "vim"
    assert parser.get("remote.origin", "url") == "git@github.com:org/repo"
    assert parser.get("user", "name") == "Dev Person"
    assert parser.get("user", "SIGNINGKEY") == "ABCDEF12"
    assert parser.get("missing", "key") is None


def test_parser_ignores_keys_before_any_section() -> None:
    parser = GitConfigParser()
    parser.line("name = stray")
    parser.line("[user]")
    assert parser.get("user", "name") is None


def test_git_config_user_requires_name_and_email() -> None:
    config = GitConfig.from_lines(GITCONFIG.splitlines())
    assert config.user == GitUser(name="Dev Person", email="dev@example.com", signing_key="ABCDEF12")
    assert GitConfig.from_lines(["[user]", "name = Only Name"]).user is None


def test_load_users_git_config_missing_file(tmp_path: Path) -> None:
    assert load_users_git_config(tmp_path).user is None


def test_require_git_user_reads_home_gitconfig(tmp_path: Path) -> None:
    (tmp_path / ".gitconfig").write_text(GITCONFIG, encoding="utf-8")
    assert require_git_user(tmp_path).email == "dev@example.com"


def test_require_git_user_fails_without_identity(tmp_path: Path) -> None:
    (tmp_path / ".gitconfig").write_text("[core]\n  editor = vim\n", encoding="utf-8")
    with pytest.raises(IdentityMissingError) as excinfo:
        require_git_user(tmp_path)
    assert excinfo.value.code == "dependency_missing"
    assert excinfo.value.recovery_hint is not None
