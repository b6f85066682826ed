"""Paginated retrieval of an organisation's repositories as one collection.

The fetcher walks the provider's pages until no ``next`` cursor remains and
returns a single ordered list keyed by repository name. A page that still
fails after the configured retries fails the whole fetch; callers never see a
partial collection.
"""

from __future__ import annotations

import asyncio
import dataclasses
import typing as typ

import httpx

from orgfolio.errors import FetchError
from orgfolio.logging import get_logger, log_info, log_warning

from .errors import GitHubAPIError, GitHubResponseShapeError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .client import RepositoryPageProvider
    from .models import RawRepository, RepositoryPage

logger = get_logger(__name__)

type Sleep = cabc.Callable[[float], cabc.Awaitable[None]]


@dataclasses.dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Exponential backoff settings for page requests.

    Attributes
    ----------
    max_attempts
        Total attempts per page, including the first.
    backoff_s
        Delay before the second attempt; doubles on each further retry.
    max_backoff_s
        Cap applied to any single delay.

    """

    max_attempts: int = 3
    backoff_s: float = 0.5
    max_backoff_s: float = 8.0

    def delay_for(self, attempt: int) -> float:
        """Return the delay to wait after failed ``attempt`` (1-based)."""
        return min(self.backoff_s * (2 ** (attempt - 1)), self.max_backoff_s)


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    return isinstance(exc, GitHubAPIError) and exc.is_transient


class RepositoryFetcher:
    """Collect every repository of an organisation from a paginated provider."""

    def __init__(
        self,
        provider: RepositoryPageProvider,
        *,
        retry: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Configure the fetcher with a page provider and retry policy."""
        self._provider = provider
        self._retry = retry or RetryPolicy()
        self._sleep = sleep

    async def fetch_all(self, org: str) -> list[RawRepository]:
        """Return all repositories of ``org`` in first-seen order.

        Duplicate names are collapsed; the last record seen for a name
        replaces earlier ones while keeping the original position.

        Raises
        ------
        FetchError
            If any page cannot be retrieved or decoded.

        """
        collected: dict[str, RawRepository] = {}
        page_url: str | None = None
        pages = 0

        while True:
            page = await self._fetch_page(org, page_url, page_number=pages + 1)
            pages += 1
            for repo in page.repositories:
                collected[repo.name] = repo
            if page.next_url is None:
                break
            page_url = page.next_url

        log_info(
            logger,
            "Fetched %d repositories for %s across %d page(s)",
            len(collected),
            org,
            pages,
        )
        return list(collected.values())

    async def _fetch_page(
        self, org: str, page_url: str | None, *, page_number: int
    ) -> RepositoryPage:
        source = f"{org} repositories (page {page_number})"
        attempt = 1
        while True:
            try:
                return await self._provider.fetch_repository_page(
                    org, page_url=page_url
                )
            except GitHubResponseShapeError as exc:
                raise FetchError(source, str(exc)) from exc
            except (GitHubAPIError, httpx.HTTPError) as exc:
                if not _is_retryable(exc) or attempt >= self._retry.max_attempts:
                    raise FetchError(source, str(exc) or type(exc).__name__) from exc
                delay = self._retry.delay_for(attempt)
                log_warning(
                    logger,
                    "Attempt %d/%d for %s failed (%s); retrying in %.2fs",
                    attempt,
                    self._retry.max_attempts,
                    source,
                    exc,
                    delay,
                )
                await self._sleep(delay)
                attempt += 1


__all__ = ["RepositoryFetcher", "RetryPolicy"]
