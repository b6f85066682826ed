"""GitHub REST client used to list organisation repositories and enrich projects."""

from __future__ import annotations

import dataclasses
import os
import typing as typ
import urllib.parse

import httpx
import msgspec

from .errors import GitHubAPIError, GitHubConfigError, GitHubResponseShapeError
from .models import Contributor, RawRepository, RepositoryPage

_HTTP_ERROR_STATUS_THRESHOLD = 400
_HTTP_FORBIDDEN = 403


class RepositoryPageProvider(typ.Protocol):
    """Paginated source of organisation repositories."""

    async def fetch_repository_page(
        self, org: str, *, page_url: str | None = None
    ) -> RepositoryPage:
        """Return one page; ``page_url=None`` requests the first page."""
        ...


class RepositoryInsightsProvider(typ.Protocol):
    """On-demand contributor and language lookups for a single repository."""

    async def list_contributors(self, org: str, repo: str) -> list[Contributor]:
        """Return contributors for ``org/repo``."""
        ...

    async def get_languages(self, org: str, repo: str) -> dict[str, int]:
        """Return a mapping of language name to byte count for ``org/repo``."""
        ...


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubRestConfig:
    """Configuration for the GitHub REST API client."""

    token: str | None = None
    api_url: str = "https://api.github.com"
    timeout_s: float = 20.0
    user_agent: str = "orgfolio/0.1"
    page_size: int = 100

    @classmethod
    def from_env(cls) -> GitHubRestConfig:
        """Build configuration using the optional ``ORGFOLIO_GITHUB_TOKEN``.

        Public organisations can be listed anonymously, at the cost of a much
        lower rate limit, so a missing token is not an error.
        """
        token = os.environ.get("ORGFOLIO_GITHUB_TOKEN", "").strip()
        return cls(token=token or None)


def _is_rate_limited(response: httpx.Response) -> bool:
    return (
        response.status_code == _HTTP_FORBIDDEN
        and response.headers.get("x-ratelimit-remaining") == "0"
    )


def _next_link(response: httpx.Response) -> str | None:
    """Return the ``rel="next"`` URL from the Link header, if any."""
    next_link = response.links.get("next")
    if not next_link:
        return None
    url = next_link.get("url")
    return url or None


class GitHubRestClient:
    """GitHub REST implementation of the repository provider protocols."""

    def __init__(
        self,
        config: GitHubRestConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client with the provided API configuration."""
        if config.token is not None and not config.token.strip():
            raise GitHubConfigError.empty_token()

        self._config = config
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": config.user_agent,
        }
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"

        # Headers travel with each request so injected clients authenticate too.
        self._headers = headers
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=config.timeout_s)

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    def _url(self, *segments: str) -> str:
        quoted = "/".join(urllib.parse.quote(segment, safe="") for segment in segments)
        return f"{self._config.api_url.rstrip('/')}/{quoted}"

    async def _get(
        self, url: str, params: dict[str, str | int] | None = None
    ) -> httpx.Response:
        response = await self._client.get(url, params=params, headers=self._headers)
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise GitHubAPIError.http_error(
                response.status_code,
                str(response.url),
                rate_limited=_is_rate_limited(response),
            )
        return response

    async def fetch_repository_page(
        self, org: str, *, page_url: str | None = None
    ) -> RepositoryPage:
        """Fetch one page of ``GET /orgs/{org}/repos``.

        The first page is built from the organisation name; later pages use
        the ``next`` link GitHub returns, so the caller never computes page
        offsets itself.
        """
        if page_url is None:
            response = await self._get(
                self._url("orgs", org, "repos"),
                params={"type": "all", "per_page": self._config.page_size},
            )
        else:
            response = await self._get(page_url)

        try:
            repositories = msgspec.json.decode(
                response.content, type=list[RawRepository]
            )
        except (msgspec.ValidationError, msgspec.DecodeError) as exc:
            raise GitHubResponseShapeError.invalid(f"{org} repositories", exc) from exc

        return RepositoryPage(
            repositories=tuple(repositories),
            next_url=_next_link(response),
        )

    async def list_contributors(self, org: str, repo: str) -> list[Contributor]:
        """Return contributors of ``org/repo`` in GitHub's contribution order."""
        response = await self._get(self._url("repos", org, repo, "contributors"))
        if not response.content.strip():
            # GitHub answers 204 with no body for empty repositories.
            return []
        try:
            return msgspec.json.decode(response.content, type=list[Contributor])
        except (msgspec.ValidationError, msgspec.DecodeError) as exc:
            raise GitHubResponseShapeError.invalid(f"{repo} contributors", exc) from exc

    async def get_languages(self, org: str, repo: str) -> dict[str, int]:
        """Return the language byte counts of ``org/repo``."""
        response = await self._get(self._url("repos", org, repo, "languages"))
        try:
            return msgspec.json.decode(response.content, type=dict[str, int])
        except (msgspec.ValidationError, msgspec.DecodeError) as exc:
            raise GitHubResponseShapeError.invalid(f"{repo} languages", exc) from exc


__all__ = [
    "GitHubRestClient",
    "GitHubRestConfig",
    "RepositoryInsightsProvider",
    "RepositoryPageProvider",
]
