"""Reader for the user's global git identity.

Example:
    >>> config = GitConfig.from_lines(["[user]", "  name = Dev", "  email = dev@example.com"])
    >>> config.user.name
    'Dev'
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from . import paths
from .errors import IdentityMissingError

_SECTION_RE = re.compile(r'^\s*\[\s*([\w.-]+)(?:\s+"((?:[^"\\]|\\.)*)")?\s*\]\s*$')
_KEY_VALUE_RE = re.compile(r"^\s*([A-Za-z][\w-]*)\s*=\s*(.*?)\s*$")
_COMMENT_PREFIXES = ("#", ";")


@dataclass(frozen=True)
class GitUser:
    name: str
    email: str
    signing_key: str | None = None


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


@dataclass
class GitConfigParser:
    """Line-oriented parser for gitconfig ``[section]`` / ``key = value`` files.

    Section and key names are case-insensitive, as in git. Subsections are
    stored as ``section.subsection``. Repeated keys keep the last value.
    """

    sections: dict[str, dict[str, str]] = field(default_factory=dict)
    _current: str | None = None

    def line(self, content: str) -> None:
        stripped = content.strip()
        if not stripped or stripped.startswith(_COMMENT_PREFIXES):
            return
        section_match = _SECTION_RE.match(content)
        if section_match:
            name = section_match.group(1).lower()
            subsection = section_match.group(2)
            self._current = f"{name}.{subsection}" if subsection is not None else name
            self.sections.setdefault(self._current, {})
            return
        if self._current is None:
            return
        kv_match = _KEY_VALUE_RE.match(content)
        if kv_match:
            key = kv_match.group(1).lower()
            self.sections[self._current][key] = _unquote(kv_match.group(2))

    def get(self, section: str, key: str) -> str | None:
        return self.sections.get(section.lower(), {}).get(key.lower())


@dataclass(frozen=True)
class GitConfig:
    user: GitUser | None = None

    @classmethod
    def from_parser(cls, parser: GitConfigParser) -> GitConfig:
        name = parser.get("user", "name")
        email = parser.get("user", "email")
        if not name or not email:
            return cls(user=None)
        return cls(
            user=GitUser(
                name=name,
                email=email,
                signing_key=parser.get("user", "signingKey") or None,
            )
        )

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> GitConfig:
        parser = GitConfigParser()
        for line in lines:
            parser.line(line)
        return cls.from_parser(parser)

    @classmethod
    def from_file(cls, path: Path) -> GitConfig:
        with path.open("r", encoding="utf-8") as fh:
            return cls.from_lines(fh)


def load_users_git_config(home: Path) -> GitConfig:
    """Read ``<home>/.gitconfig``; a missing file means no identity."""
    path = paths.user_gitconfig_path(home)
    if not path.exists():
        return GitConfig()
    return GitConfig.from_file(path)


def require_git_user(home: Path) -> GitUser:
    """Return the git identity used to sign batchpatch commits.

    Raises:
        IdentityMissingError: When no ``user.name`` and ``user.email`` are set.
    """
    try:
        config = load_users_git_config(home)
    except OSError as exc:
        raise IdentityMissingError(
            f"failed to read {paths.user_gitconfig_path(home)}: {exc}"
        ) from exc
    if config.user is None:
        raise IdentityMissingError(
            f"no git identity found in {paths.user_gitconfig_path(home)}",
            recovery_hint="run: git config --global user.name NAME && "
            "git config --global user.email EMAIL",
        )
    return config.user
