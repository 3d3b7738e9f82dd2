"""Command-line entry point for batchpatch."""

from pathlib import Path
from types import SimpleNamespace
from typing import Annotated, Optional

import typer

from . import __version__
from . import log as batchpatch_log
from .commands import run_batch as run_cmd
from .commands import show_status as status_cmd
from .models import CLONE_MODE_VALUES
from .paths import DEFAULT_STATE_FILENAME

STATUS_FORMAT_VALUES = ("table", "json")

app = typer.Typer(
    help="Apply one change set across many GitHub repositories and open PRs.",
    no_args_is_help=True,
    add_completion=False,
)


def _choice(option: str, value: str | None, allowed: tuple[str, ...]) -> str | None:
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized not in allowed:
        raise typer.BadParameter(
            f"{value!r}; expected one of: {', '.join(allowed)}",
            param_hint=option,
        )
    return normalized


def _log_level_callback(value: str | None) -> str | None:
    return _choice("--log-level", value, batchpatch_log.LEVEL_NAMES)


def _mode_callback(value: str) -> str:
    return _choice("--mode", value, CLONE_MODE_VALUES) or "ssh"


def _format_callback(value: str) -> str:
    return _choice("--format", value, STATUS_FORMAT_VALUES) or "table"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"batchpatch {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    log_level: Annotated[
        Optional[str],
        typer.Option(
            "--log-level",
            help=f"Log verbosity ({', '.join(batchpatch_log.LEVEL_NAMES)}).",
            callback=_log_level_callback,
        ),
    ] = None,
    no_color: Annotated[
        bool,
        typer.Option("--no-color", help="Disable colorized output."),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show the version and exit.",
            callback=_version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    if log_level is not None:
        batchpatch_log.set_level(log_level)
    if no_color:
        batchpatch_log.set_no_color(True)


@app.command("run")
def run_command(
    branch: Annotated[
        str,
        typer.Option("--branch", "-b", help="Branch to create in every repository."),
    ],
    patch_file: Annotated[
        Optional[Path],
        typer.Option("--patch-file", "-p", help="Unified diff applied with patch -p1."),
    ] = None,
    script: Annotated[
        Optional[Path],
        typer.Option("--script", "-x", help="Script run inside each checkout."),
    ] = None,
    repo_list: Annotated[
        Optional[Path],
        typer.Option(
            "--repo-list",
            "-l",
            help="Repositories to seed a new state file with, one per line.",
        ),
    ] = None,
    state_file: Annotated[
        Path,
        typer.Option("--state-file", "-s", help="Batch state file to load and update."),
    ] = Path(DEFAULT_STATE_FILENAME),
    config_file: Annotated[
        Optional[Path],
        typer.Option("--config-file", "-c", help="Application config (JSON)."),
    ] = None,
    message: Annotated[
        Optional[str],
        typer.Option("--message", "-m", help="Commit message."),
    ] = None,
    mode: Annotated[
        str,
        typer.Option("--mode", help="Clone over ssh or https.", callback=_mode_callback),
    ] = "ssh",
    workdir: Annotated[
        Path,
        typer.Option("--workdir", "-w", help="Directory repositories are cloned under."),
    ] = Path("."),
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Fail on unparsable repository list lines."),
    ] = False,
    pr_title: Annotated[
        Optional[str],
        typer.Option("--pr-title", help="Pull request title."),
    ] = None,
    pr_description: Annotated[
        Optional[str],
        typer.Option("--pr-description", help="Pull request body."),
    ] = None,
) -> None:
    """Clone, patch, branch, commit, push and open a PR for every repository."""
    run_cmd(
        SimpleNamespace(
            branch=branch,
            patch_file=patch_file,
            script=script,
            repo_list=repo_list,
            state_file=state_file,
            config_file=config_file,
            message=message,
            mode=mode,
            workdir=workdir,
            strict=strict,
            pr_title=pr_title,
            pr_description=pr_description,
        )
    )


@app.command("status")
def status_command(
    state_file: Annotated[
        Path,
        typer.Option("--state-file", "-s", help="Batch state file to read."),
    ] = Path(DEFAULT_STATE_FILENAME),
    format: Annotated[
        str,
        typer.Option("--format", help="Output format (table or json).", callback=_format_callback),
    ] = "table",
) -> None:
    """Show how far each repository has progressed."""
    status_cmd(SimpleNamespace(state_file=state_file, format=format))


def main() -> None:
    app(prog_name="batchpatch")


if __name__ == "__main__":
    main()
