from pathlib import Path

import pytest

from batchpatch.errors import InvalidArgumentsError, RepoListFormatError
from batchpatch.models import RemoteRepo
from batchpatch.repo_list import FORMAT_ERROR_MESSAGE, parse_repo_list, read_repo_list

LINES = [
    "org/alpha\n",
    "https://github.com/org/beta\n",
    "not a repo\n",
    "\n",
    "https://github.com/org/gamma.git\n",
]


def test_fault_tolerant_parse_skips_invalid_lines(capsys: pytest.CaptureFixture[str]) -> None:
    state = parse_repo_list(LINES, fault_tolerant=True, source="repos.txt")

    assert [str(record.defn) for record in state.repos] == ["org/alpha", "org/beta", "org/gamma"]
    assert all(isinstance(record, RemoteRepo) for record in state.repos)
    err = capsys.readouterr().err
    assert "2 lines from repos.txt failed to parse" in err
    assert "line 3: 'not a repo'" in err
    assert "line 4: ''" in err


def test_strict_parse_rejects_any_invalid_line() -> None:
    with pytest.raises(RepoListFormatError) as excinfo:
        parse_repo_list(LINES, fault_tolerant=False)

    assert excinfo.value.message == FORMAT_ERROR_MESSAGE
    assert excinfo.value.code == "validation_failed"


def test_strict_parse_accepts_clean_list() -> None:
    state = parse_repo_list(["org/a", "org/b\r\n"], fault_tolerant=False)
    assert [record.defn.name for record in state.repos] == ["a", "b"]


def test_read_repo_list_reads_file(tmp_path: Path) -> None:
    path = tmp_path / "repos.txt"
    path.write_text("org/a\norg/b\n", encoding="utf-8")

    state = read_repo_list(path, fault_tolerant=False)

    assert len(state.repos) == 2


def test_read_repo_list_missing_file(tmp_path: Path) -> None:
    with pytest.raises(InvalidArgumentsError, match="unable to read repository list"):
        read_repo_list(tmp_path / "missing.txt", fault_tolerant=True)
