"""Implementation for the ``batchpatch status`` command."""

from __future__ import annotations

import json
from pathlib import Path

from rich import box
from rich.console import Console
from rich.table import Table

from .. import paths
from .. import state as state_store
from ..errors import BatchpatchError
from ..io import die, say
from ..models import (
    BatchState,
    BranchedRepo,
    LifecycleRecord,
    LocalRepo,
    PatchedRepo,
    PRdRepo,
    stages_passed,
)

_FORMATS = {"table", "json"}


def stage_label(record: LifecycleRecord) -> str:
    """Name the last stage a record reached.

    Example:
        >>> from batchpatch.models import RemoteRepo, RepoDefn
        >>> stage_label(RemoteRepo(defn=RepoDefn(owner="o", name="n")))
        'remote'
    """
    if isinstance(record, PRdRepo):
        return "pr opened"
    if isinstance(record, BranchedRepo):
        if record.pushed:
            return "pushed"
        if record.committed:
            return "committed"
        return "branched"
    if isinstance(record, PatchedRepo):
        return "no changes" if record.is_noop else "patched"
    if isinstance(record, LocalRepo):
        return "cloned"
    return "remote"


def _detail(record: LifecycleRecord) -> str | None:
    if isinstance(record, PRdRepo):
        return record.url
    if isinstance(record, BranchedRepo):
        return record.branch_name
    if isinstance(record, PatchedRepo) and record.success:
        return f"{record.changes} files changed"
    if isinstance(record, LocalRepo):
        return str(record.local_path)
    return None


def record_payload(record: LifecycleRecord) -> dict[str, object]:
    return {
        "repo": str(record.defn),
        "stage": stage_label(record),
        "stagesPassed": stages_passed(record),
        "detail": _detail(record),
        "error": record.error,
    }


def _render_table(state: BatchState, state_path: Path) -> None:
    console = Console()
    if not state.repos:
        console.print(f"No repositories in {state_path}.")
        return
    table = Table(title=f"Batch status ({state_path})", box=box.SIMPLE)
    table.add_column("Repository", no_wrap=True)
    table.add_column("Stage", no_wrap=True)
    table.add_column("Detail")
    table.add_column("Error", style="red")
    for record in state.repos:
        payload = record_payload(record)
        error = payload["error"]
        table.add_row(
            str(payload["repo"]),
            str(payload["stage"]),
            str(payload["detail"] or ""),
            error.splitlines()[0] if isinstance(error, str) and error else "",
        )
    console.print(table)
    if state.pr_title:
        console.print(f"PR title: {state.pr_title}")


def show_status(args: object) -> None:
    """Show how far each repository in the batch has progressed."""
    format_value = str(getattr(args, "format", "table") or "table").lower()
    if format_value not in _FORMATS:
        die(f"unsupported format: {format_value}")

    raw_path = getattr(args, "state_file", None)
    state_path = Path(raw_path).expanduser() if raw_path else paths.default_state_path()
    try:
        state = state_store.load(state_path)
    except BatchpatchError as exc:
        die(exc.message)

    if format_value == "json":
        payload = {
            "stateFile": str(state_path),
            "prTitle": state.pr_title,
            "prDescription": state.pr_description,
            "repos": [record_payload(record) for record in state.repos],
        }
        say(json.dumps(payload, indent=2, sort_keys=True))
        return
    _render_table(state, state_path)
