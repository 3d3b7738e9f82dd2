"""GitHub REST client for opening pull requests.

The HTTP client is asynchronous, but callers see a synchronous session: a
``PullRequestSession`` owns one event loop and one ``httpx.AsyncClient`` for
its lifetime and runs one request at a time on it.

Example:
    >>> client = GithubClient(token=None)
    >>> client.available()
    False
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Protocol

import httpx

from . import __version__
from . import log as batchpatch_log
from .errors import GithubApiError

GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class PullRequestRequest:
    owner: str
    name: str
    base: str
    head: str
    title: str
    body: str
    draft: bool = False
    maintainer_can_modify: bool = True

    def payload(self) -> dict[str, object]:
        return {
            "title": self.title,
            "head": self.head,
            "base": self.base,
            "body": self.body,
            "draft": self.draft,
            "maintainer_can_modify": self.maintainer_can_modify,
        }


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    detail = None
    if isinstance(payload, dict):
        message = payload.get("message")
        if isinstance(message, str) and message.strip():
            detail = message.strip()
        errors = payload.get("errors")
        if isinstance(errors, list):
            extra = [
                str(entry.get("message"))
                for entry in errors
                if isinstance(entry, dict) and entry.get("message")
            ]
            if extra:
                detail = f"{detail or 'request failed'}: {'; '.join(extra)}"
    if not detail:
        detail = response.text.strip() or response.reason_phrase
    return f"GitHub API returned {response.status_code}: {detail}"


class PullRequestOpener(Protocol):
    """Anything that can open a pull request and return its URL."""

    def create_pull_request(
        self,
        *,
        owner: str,
        name: str,
        base: str,
        head: str,
        title: str,
        body: str,
    ) -> str: ...


class PullRequestSession:
    """Synchronous facade over an async HTTP client; use via ``GithubClient.session``."""

    def __init__(self, runner: asyncio.Runner, http: httpx.AsyncClient) -> None:
        self._runner = runner
        self._http = http

    async def _create(self, request: PullRequestRequest) -> str:
        path = f"/repos/{request.owner}/{request.name}/pulls"
        try:
            response = await self._http.post(path, json=request.payload())
        except httpx.HTTPError as exc:
            raise GithubApiError(f"unable to reach GitHub: {exc}") from exc
        if response.status_code >= 400:
            raise GithubApiError(_error_message(response), status_code=response.status_code)
        try:
            body = response.json()
        except ValueError as exc:
            raise GithubApiError("GitHub API returned a non-JSON response") from exc
        if not isinstance(body, dict):
            raise GithubApiError("GitHub API returned an unexpected payload")
        url = body.get("html_url") or body.get("url")
        if not isinstance(url, str) or not url:
            raise GithubApiError("GitHub API response did not include a pull request URL")
        return url

    def create_pull_request(
        self,
        *,
        owner: str,
        name: str,
        base: str,
        head: str,
        title: str,
        body: str,
    ) -> str:
        """Open a pull request and return its URL.

        Raises:
            GithubApiError: When GitHub rejects the request or cannot be reached.
        """
        request = PullRequestRequest(
            owner=owner, name=name, base=base, head=head, title=title, body=body
        )
        return self._runner.run(self._create(request))


class GithubClient:
    """Factory for pull-request sessions against the GitHub REST API.

    Args:
        token: Access token; without one every request fails per item.
        base_url: API root, overridable for GitHub Enterprise.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        token: str | None,
        *,
        base_url: str = GITHUB_API_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.token = token
        self.base_url = base_url
        self._transport = transport

    def available(self) -> bool:
        return bool(self.token)

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self.token}",
            "User-Agent": f"batchpatch/{__version__}",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }

    @contextmanager
    def session(self) -> Iterator[PullRequestOpener]:
        """Yield a session whose requests share one event loop and connection pool.

        Raises:
            GithubApiError: On use, when no access token is configured.
        """
        if not self.token:
            yield _UnavailableSession()
            return
        with asyncio.Runner() as runner:
            http = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers(),
                timeout=_TIMEOUT_SECONDS,
                transport=self._transport,
            )
            try:
                yield PullRequestSession(runner, http)
            finally:
                runner.run(http.aclose())
                batchpatch_log.trace("closed GitHub API session")


class _UnavailableSession:
    """Stands in for a session when no access token is configured."""

    def create_pull_request(
        self,
        *,
        owner: str,
        name: str,
        base: str,
        head: str,
        title: str,
        body: str,
    ) -> str:
        raise GithubApiError(
            "there is no GitHub access token configured",
            recovery_hint="set githubAccessToken in the batchpatch config file",
        )
