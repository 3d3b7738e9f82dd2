"""Subprocess helpers for running git, patch and user scripts."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Protocol

TIMEOUT_RETURNCODE = 124
NOT_EXECUTABLE_RETURNCODE = 126
MISSING_COMMAND_RETURNCODE = 127


@dataclass(frozen=True)
class CommandRequest:
    """Typed command invocation request."""

    argv: tuple[str, ...]
    cwd: Path | None = None
    env: Mapping[str, str] | None = None
    timeout_seconds: float | None = None
    stdin: int | None = None


@dataclass(frozen=True)
class CommandResult:
    """Typed command execution result."""

    argv: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def combined_output(self) -> str:
        """Standard output followed by standard error, newline separated."""
        return f"{self.stdout}\n{self.stderr}"

    def failure_detail(self) -> str:
        output = (self.stderr or self.stdout or "").strip()
        command_text = " ".join(self.argv)
        if output:
            return output
        return f"command failed with exit code {self.returncode}: {command_text}"


class CommandRunner(Protocol):
    """Runtime command-execution interface."""

    def run(self, request: CommandRequest) -> CommandResult | None: ...


class SubprocessCommandRunner:
    """Default command-runner adapter backed by subprocess."""

    def run(self, request: CommandRequest) -> CommandResult | None:
        run_kwargs: dict[str, object] = {
            "cwd": request.cwd,
            "env": request.env,
            "check": False,
            "capture_output": True,
            "text": True,
            "errors": "replace",
        }
        if request.timeout_seconds is not None:
            run_kwargs["timeout"] = request.timeout_seconds
        if request.stdin is not None:
            run_kwargs["stdin"] = request.stdin
        try:
            completed = subprocess.run(list(request.argv), **run_kwargs)
        except FileNotFoundError:
            return None
        except subprocess.TimeoutExpired as exc:
            stdout = (exc.stdout or "") if isinstance(exc.stdout, str) else ""
            stderr = (exc.stderr or "") if isinstance(exc.stderr, str) else ""
            return CommandResult(
                argv=request.argv,
                returncode=TIMEOUT_RETURNCODE,
                stdout=stdout,
                stderr=stderr,
                timed_out=True,
            )

        stdout = completed.stdout if isinstance(completed.stdout, str) else ""
        stderr = completed.stderr if isinstance(completed.stderr, str) else ""
        return CommandResult(
            argv=request.argv,
            returncode=completed.returncode,
            stdout=stdout,
            stderr=stderr,
        )


_DEFAULT_COMMAND_RUNNER: CommandRunner = SubprocessCommandRunner()


def run_with_runner(
    request: CommandRequest, *, runner: CommandRunner | None = None
) -> CommandResult | None:
    """Execute a typed command request with the given runner."""
    active_runner = runner or _DEFAULT_COMMAND_RUNNER
    return active_runner.run(request)


@dataclass(frozen=True)
class ProcessOutcome:
    """Exit status and combined output of a process run in a working directory."""

    returncode: int
    output: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


class ProcessExecutor:
    """Runs patch tools and user scripts inside a repository checkout.

    A missing executable (exit code 127) or one the OS refuses to start (exit
    code 126) is reported as a failed outcome rather than an exception, so it
    is attributed to the item being patched.
    """

    def __init__(self, runner: CommandRunner | None = None) -> None:
        self._runner = runner

    def run(self, argv: list[str], *, cwd: Path) -> ProcessOutcome:
        request = CommandRequest(argv=tuple(argv), cwd=cwd)
        try:
            result = run_with_runner(request, runner=self._runner)
        except OSError as exc:
            return ProcessOutcome(
                returncode=NOT_EXECUTABLE_RETURNCODE,
                output=f"unable to run {argv[0] if argv else '(none)'}: {exc}",
            )
        if result is None:
            return ProcessOutcome(
                returncode=MISSING_COMMAND_RETURNCODE,
                output=f"missing required command: {argv[0] if argv else '(none)'}",
            )
        return ProcessOutcome(returncode=result.returncode, output=result.combined_output)
