"""Failure contracts for batchpatch runs.

Fatal errors stop the whole run; the CLI turns them into a message and a
nonzero exit. Per-item errors are raised by collaborators (git, GitHub) and
caught by the stage functions, which record them as ``last_error`` on the
item being processed. Programmer bugs raise normal exceptions.
"""

from __future__ import annotations

from typing import Literal

FailureCode = Literal[
    "not_found",
    "validation_failed",
    "dependency_missing",
    "io_failed",
    "run_aborted",
    "external_command_failed",
    "unsupported_configuration",
]


class BatchpatchError(Exception):
    """Expected failure with a stable code.

    Use ``raise BatchpatchError(...) from exc`` to chain a causing exception;
    it is available as ``__cause__``.
    """

    def __init__(
        self,
        code: FailureCode,
        message: str,
        *,
        recovery_hint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.recovery_hint = recovery_hint


# Fatal, run-aborting failures.


class StateNotFoundError(BatchpatchError):
    """No state file exists yet at the requested path."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("not_found", message, recovery_hint=recovery_hint)


class StateFileError(BatchpatchError):
    """The state file exists but could not be read, parsed or written."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("io_failed", message, recovery_hint=recovery_hint)


class ConfigError(BatchpatchError):
    """The application config file is unreadable or malformed."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("io_failed", message, recovery_hint=recovery_hint)


class WorkspaceSetupError(BatchpatchError):
    """The local filesystem refused to host a clone destination."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("io_failed", message, recovery_hint=recovery_hint)


class RepoListFormatError(BatchpatchError):
    """A repository list contained unparsable lines in strict mode."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("validation_failed", message, recovery_hint=recovery_hint)


class InvalidArgumentsError(BatchpatchError):
    """Command-line arguments were missing, invalid or conflicting."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("validation_failed", message, recovery_hint=recovery_hint)


class IdentityMissingError(BatchpatchError):
    """No git user identity (name and email) could be found."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("dependency_missing", message, recovery_hint=recovery_hint)


class RunAbortedError(BatchpatchError):
    """A stage pass left no surviving items."""

    def __init__(
        self, stage: str, message: str, *, recovery_hint: str | None = None
    ) -> None:
        super().__init__("run_aborted", message, recovery_hint=recovery_hint)
        self.stage = stage


# Per-item failures, recorded on the item and never fatal on their own.


class GitCommandError(BatchpatchError):
    """A git invocation failed."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("external_command_failed", message, recovery_hint=recovery_hint)


class GitPathExistsError(GitCommandError):
    """Clone refused because the destination already holds content."""


class GitBranchExistsError(GitCommandError):
    """Branch creation refused because the name is already taken."""


class UnsupportedRemoteError(BatchpatchError):
    """The repository's remote configuration is not supported."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("unsupported_configuration", message, recovery_hint=recovery_hint)


class GithubApiError(BatchpatchError):
    """The GitHub REST API rejected a request or could not be reached."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        recovery_hint: str | None = None,
    ) -> None:
        super().__init__("external_command_failed", message, recovery_hint=recovery_hint)
        self.status_code = status_code
