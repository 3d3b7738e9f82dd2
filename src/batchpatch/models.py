"""Pydantic models for batchpatch run state.

A repository's progress is a closed ladder of lifecycle records. Each record
embeds the complete record it was produced from, so the full history of an
item is always recoverable from the persisted state:

    RemoteRepo -> LocalRepo -> PatchedRepo -> BranchedRepo -> PRdRepo

Example:
    >>> defn = RepoDefn(owner="org", name="repo")
    >>> str(defn)
    'org/repo'
    >>> stages_passed(RemoteRepo(defn=defn))
    0
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import ClassVar, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializationInfo,
    field_serializer,
    field_validator,
)
from pydantic.alias_generators import to_camel

CLONE_MODE_VALUES = ("ssh", "https")
CloneMode = Literal["ssh", "https"]

DEFAULT_MAIN_BRANCH = "main"
GITHUB_HOST = "github.com"

_SSH_URI_RE = re.compile(r"^\w+@[\w.]+:.*")
_URL_LINE_RE = re.compile(r"^https?://github\.com/([^/\s]+)/([^/\s]+?)(?:\.git)?/?$")
_SHORTHAND_LINE_RE = re.compile(r"^([^/\s]+)/([^/\s]+)$")


def parse_clone_mode(value: str | None) -> CloneMode:
    """Normalize a clone-mode string; anything not HTTP(S) means SSH.

    Example:
        >>> parse_clone_mode("HTTP")
        'https'
        >>> parse_clone_mode("whatever")
        'ssh'
    """
    normalized = (value or "").strip().lower()
    if normalized in {"https", "http"}:
        return "https"
    return "ssh"


def clone_mode_from_url(url: str) -> CloneMode | None:
    """Classify a clone URL as HTTPS or SSH.

    Example:
        >>> clone_mode_from_url("git@github.com:org/repo")
        'ssh'
        >>> clone_mode_from_url("ftp://example") is None
        True
    """
    if url.startswith("http"):
        return "https"
    if _SSH_URI_RE.match(url):
        return "ssh"
    return None


class _Record(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class RepoDefn(_Record):
    """Immutable identifier of a GitHub repository.

    Attributes:
        owner: Owning user or organization.
        name: Repository name.
        main_branch_name: Branch to clone and target PRs at (default ``main``).

    Example:
        >>> RepoDefn(owner="org", name="repo").clone_uri("https")
        'https://github.com/org/repo'
    """

    owner: str
    name: str
    main_branch_name: str | None = None

    def __str__(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def base_branch(self) -> str:
        return self.main_branch_name or DEFAULT_MAIN_BRANCH

    def clone_uri_ssh(self) -> str:
        return f"git@{GITHUB_HOST}:{self.owner}/{self.name}"

    def clone_uri_https(self) -> str:
        return f"https://{GITHUB_HOST}/{self.owner}/{self.name}"

    def clone_uri(self, mode: CloneMode) -> str:
        if mode == "https":
            return self.clone_uri_https()
        return self.clone_uri_ssh()

    @classmethod
    def parse(cls, value: str) -> RepoDefn:
        """Parse ``owner/name`` or ``https://github.com/owner/name``.

        Raises:
            ValueError: When the value matches neither form.

        Example:
            >>> str(RepoDefn.parse("https://github.com/org/repo.git"))
            'org/repo'
        """
        text = value.strip()
        match = _URL_LINE_RE.match(text) or _SHORTHAND_LINE_RE.match(text)
        if not match:
            raise ValueError(f"line was not in a valid format: {value!r}")
        return cls(owner=match.group(1), name=match.group(2))


class RemoteRepo(_Record):
    """A repository known only by its identifier."""

    VARIANT: ClassVar[str] = "RemoteRepo"

    defn: RepoDefn

    @property
    def is_failed(self) -> bool:
        return False

    @property
    def error(self) -> str | None:
        return None


class LocalRepo(_Record):
    """A repository with a working copy on disk (or a failed attempt at one)."""

    VARIANT: ClassVar[str] = "LocalRepo"

    remote: RemoteRepo
    local_path: Path
    last_error: str | None = None

    @property
    def defn(self) -> RepoDefn:
        return self.remote.defn

    @property
    def is_failed(self) -> bool:
        return self.last_error is not None

    @property
    def error(self) -> str | None:
        return self.last_error


class PatchedRepo(_Record):
    """Outcome of applying the change set to a local working copy.

    ``success`` with ``changes == 0`` is a no-op patch: it stays in state but
    never advances to branching.
    """

    VARIANT: ClassVar[str] = "PatchedRepo"

    repo: LocalRepo
    changes: int = 0
    output: str = ""
    success: bool = False

    @property
    def defn(self) -> RepoDefn:
        return self.repo.defn

    @property
    def local_path(self) -> Path:
        return self.repo.local_path

    @property
    def is_failed(self) -> bool:
        return not self.success

    @property
    def is_noop(self) -> bool:
        return self.success and self.changes == 0

    @property
    def has_changes(self) -> bool:
        return self.success and self.changes > 0

    @property
    def error(self) -> str | None:
        if self.success:
            return None
        return self.output.strip() or "patch did not apply"


class BranchedRepo(_Record):
    """A patched repository with its own branch, tracking commit and push.

    ``committed`` and ``pushed`` only ever go from false to true, and
    ``branch_name`` never changes once assigned.
    """

    VARIANT: ClassVar[str] = "BranchedRepo"

    patched: PatchedRepo
    branch_name: str
    committed: bool = False
    pushed: bool = False
    last_error: str | None = None

    @property
    def defn(self) -> RepoDefn:
        return self.patched.defn

    @property
    def local_path(self) -> Path:
        return self.patched.local_path

    @property
    def is_failed(self) -> bool:
        return self.last_error is not None

    @property
    def error(self) -> str | None:
        return self.last_error


class PRdRepo(_Record):
    """A branch that has an open pull request."""

    VARIANT: ClassVar[str] = "PRdRepo"

    branched: BranchedRepo
    url: str

    @property
    def defn(self) -> RepoDefn:
        return self.branched.defn

    @property
    def is_failed(self) -> bool:
        return False

    @property
    def error(self) -> str | None:
        return None


LifecycleRecord = Union[RemoteRepo, LocalRepo, PatchedRepo, BranchedRepo, PRdRepo]

RECORD_TYPES: tuple[type[_Record], ...] = (
    RemoteRepo,
    LocalRepo,
    PatchedRepo,
    BranchedRepo,
    PRdRepo,
)
_RECORD_BY_TAG: dict[str, type[_Record]] = {
    record_type.VARIANT: record_type for record_type in RECORD_TYPES  # type: ignore[attr-defined]
}


def stages_passed(record: LifecycleRecord) -> int:
    """Return how many pipeline stages the record has durably passed (0-6).

    Example:
        >>> local = LocalRepo(
        ...     remote=RemoteRepo(defn=RepoDefn(owner="o", name="n")),
        ...     local_path=Path("o/n"),
        ... )
        >>> stages_passed(local)
        1
        >>> stages_passed(local.model_copy(update={"last_error": "boom"}))
        0
    """
    if isinstance(record, PRdRepo):
        return 6
    if isinstance(record, BranchedRepo):
        if record.pushed:
            return 5
        if record.committed:
            return 4
        return 2 if record.is_failed else 3
    if isinstance(record, PatchedRepo):
        return 2 if record.has_changes else 1
    if isinstance(record, LocalRepo):
        return 0 if record.is_failed else 1
    return 0


def tag_record(
    record: LifecycleRecord,
    *,
    mode: str = "json",
    by_alias: bool = True,
    exclude_none: bool = False,
) -> dict[str, object]:
    """Wrap a record's payload in a single-key object naming its variant."""
    return {
        record.VARIANT: record.model_dump(
            mode=mode, by_alias=by_alias, exclude_none=exclude_none
        )
    }


def untag_record(payload: object) -> LifecycleRecord:
    """Rebuild a record from its externally tagged payload.

    Raises:
        ValueError: When the payload is not a single known variant tag.
    """
    if isinstance(payload, RECORD_TYPES):
        return payload  # type: ignore[return-value]
    if not isinstance(payload, dict) or len(payload) != 1:
        raise ValueError("lifecycle record must be an object with exactly one variant tag")
    tag, body = next(iter(payload.items()))
    record_type = _RECORD_BY_TAG.get(tag)
    if record_type is None:
        raise ValueError(f"unknown lifecycle record variant {tag!r}")
    return record_type.model_validate(body)  # type: ignore[return-value]


class BatchData(_Record):
    repos: list[LifecycleRecord] = Field(default_factory=list)

    @field_validator("repos", mode="before")
    @classmethod
    def untag_repos(cls, value: object) -> object:
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValueError("repos must be a list")
        return [untag_record(item) for item in value]

    @field_serializer("repos")
    def tag_repos(
        self, repos: list[LifecycleRecord], info: SerializationInfo
    ) -> list[dict[str, object]]:
        return [
            tag_record(
                record,
                mode=info.mode,
                by_alias=bool(info.by_alias),
                exclude_none=info.exclude_none,
            )
            for record in repos
        ]


class BatchState(_Record):
    """The entire persisted unit of a batch run.

    Example:
        >>> BatchState().model_dump(mode="json", by_alias=True, exclude_none=True)
        {'data': {'repos': []}}
    """

    data: BatchData = Field(default_factory=BatchData)
    pr_title: str | None = None
    pr_description: str | None = None

    @property
    def repos(self) -> list[LifecycleRecord]:
        return self.data.repos

    def with_repos(self, repos: list[LifecycleRecord]) -> BatchState:
        return self.model_copy(update={"data": BatchData(repos=list(repos))})
