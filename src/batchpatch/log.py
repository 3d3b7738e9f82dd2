"""Terminal logging for batchpatch runs.

Messages about a single repository are prefixed with its ``owner/name`` so
interleaved per-item output stays attributable. Stage progress and stage
summaries have their own helpers so the pipeline reads as a run log.
Warnings and errors go to stderr; everything else goes to stdout.
"""

from __future__ import annotations

import os
import sys
from enum import IntEnum

from rich.console import Console
from rich.text import Text


class LogLevel(IntEnum):
    TRACE = 10
    DEBUG = 20
    INFO = 30
    SUCCESS = 35
    WARNING = 40
    ERROR = 50


LEVEL_NAMES = ("trace", "debug", "info", "success", "warning", "error")

_STYLES = {
    LogLevel.TRACE: "dim",
    LogLevel.DEBUG: "cyan",
    LogLevel.INFO: "",
    LogLevel.SUCCESS: "green",
    LogLevel.WARNING: "yellow",
    LogLevel.ERROR: "bold red",
}
_ALIASES = {"warn": LogLevel.WARNING}
_DEFAULT_LEVEL = LogLevel.INFO

_configured_level: LogLevel | None = None
_no_color: bool | None = None


def parse_level(value: str | None) -> LogLevel:
    """Map a level name to a ``LogLevel``; unknown or empty names mean INFO.

    Example:
        >>> parse_level("Debug").name
        'DEBUG'
        >>> parse_level("loud") is LogLevel.INFO
        True
    """
    normalized = (value or "").strip().lower()
    if normalized in _ALIASES:
        return _ALIASES[normalized]
    if normalized in LEVEL_NAMES:
        return LogLevel[normalized.upper()]
    return _DEFAULT_LEVEL


def configured_level() -> LogLevel:
    global _configured_level
    if _configured_level is None:
        _configured_level = parse_level(os.environ.get("BATCHPATCH_LOG_LEVEL"))
    return _configured_level


def set_level(value: str | None) -> None:
    """Set the active log level (``--log-level``)."""
    global _configured_level
    _configured_level = parse_level(value)


def set_no_color(value: bool) -> None:
    """Force colorized output off (``--no-color``), or back to the environment."""
    global _no_color
    _no_color = True if value else None


def _color_disabled() -> bool:
    if _no_color is not None:
        return _no_color
    return bool(os.environ.get("NO_COLOR") or os.environ.get("BATCHPATCH_NO_COLOR"))


def _print(level: LogLevel, text: Text) -> None:
    if level < configured_level():
        return
    console = Console(
        file=sys.stderr if level >= LogLevel.WARNING else sys.stdout,
        soft_wrap=True,
        highlight=False,
        no_color=_color_disabled(),
    )
    console.print(text)


def _line(level: LogLevel, message: str) -> None:
    _print(level, Text(message, style=_STYLES[level]))


def _repo_line(level: LogLevel, repo: object, message: str) -> None:
    text = Text()
    text.append(f"{repo}", style="bold")
    text.append(f": {message}", style=_STYLES[level])
    _print(level, text)


def trace(message: str) -> None:
    _line(LogLevel.TRACE, message)


def debug(message: str) -> None:
    _line(LogLevel.DEBUG, message)


def info(message: str) -> None:
    _line(LogLevel.INFO, message)


def success(message: str) -> None:
    _line(LogLevel.SUCCESS, message)


def warning(message: str) -> None:
    _line(LogLevel.WARNING, message)


def error(message: str) -> None:
    _line(LogLevel.ERROR, message)


def repo_info(repo: object, message: str) -> None:
    _repo_line(LogLevel.INFO, repo, message)


def repo_success(repo: object, message: str) -> None:
    _repo_line(LogLevel.SUCCESS, repo, message)


def repo_warning(repo: object, message: str) -> None:
    """Report a per-repository failure; the run carries on with the others."""
    _repo_line(LogLevel.WARNING, repo, message)


def stage_started(stage: str, eligible: int) -> None:
    _print(
        LogLevel.INFO,
        Text.assemble(("==> ", "bold blue"), (f"{stage}", "bold"), f" ({eligible} eligible)"),
    )


def stage_finished(summary: str, *, failed: int) -> None:
    """Print a stage summary, as a warning when any item failed."""
    if failed:
        _line(LogLevel.WARNING, summary)
    else:
        _line(LogLevel.INFO, summary)
