"""Bootstrap a batch from a plain-text list of repositories.

One repository per line, as ``owner/name`` or ``https://github.com/owner/name``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from . import log as batchpatch_log
from .errors import InvalidArgumentsError, RepoListFormatError
from .models import BatchState, LifecycleRecord, RemoteRepo, RepoDefn

FORMAT_ERROR_MESSAGE = "Repository list was not in the right format"


@dataclass(frozen=True)
class SkippedLine:
    number: int
    content: str
    reason: str


def parse_repo_list(
    lines: Iterable[str],
    *,
    fault_tolerant: bool,
    source: str = "repository list",
) -> BatchState:
    """Parse repository identifiers into a fresh batch state.

    Args:
        lines: Raw lines of the list.
        fault_tolerant: Skip unparsable lines (logging them) instead of failing.
        source: Name of the list used in log messages.

    Raises:
        RepoListFormatError: In strict mode, when any line is unparsable.
    """
    records: list[LifecycleRecord] = []
    skipped: list[SkippedLine] = []
    for number, raw in enumerate(lines, start=1):
        line = raw.rstrip("\r\n")
        try:
            records.append(RemoteRepo(defn=RepoDefn.parse(line)))
        except ValueError as exc:
            skipped.append(SkippedLine(number=number, content=line, reason=str(exc)))

    if skipped:
        batchpatch_log.warning(f"{len(skipped)} lines from {source} failed to parse:")
        for entry in skipped:
            batchpatch_log.warning(f"  line {entry.number}: {entry.content!r}")
        if not fault_tolerant:
            raise RepoListFormatError(
                FORMAT_ERROR_MESSAGE,
                recovery_hint="use owner/name or https://github.com/owner/name, one per line",
            )
    return BatchState().with_repos(records)


def read_repo_list(path: Path, *, fault_tolerant: bool) -> BatchState:
    """Read and parse a repository list file.

    Raises:
        InvalidArgumentsError: When the file cannot be read.
        RepoListFormatError: In strict mode, when any line is unparsable.
    """
    try:
        with path.open("r", encoding="utf-8") as fh:
            lines = fh.readlines()
    except OSError as exc:
        raise InvalidArgumentsError(f"unable to read repository list {path}: {exc}") from exc
    return parse_repo_list(lines, fault_tolerant=fault_tolerant, source=str(path))
