"""Normalisation of provider repositories into project records.

Normalising a pages-enabled repository costs one HEAD request to check for a
cover image at ``https://{org}.github.io/{name}/img_cover.jpg``. Those probes
dominate normalisation latency, so they run through :class:`CoverImageProber`,
which bounds concurrency and enforces a per-probe ceiling. A slow or failing
probe yields "no cover image" and never fails the pipeline.
"""

from __future__ import annotations

import asyncio
import typing as typ

import httpx

from orgfolio.config import OrgfolioConfig
from orgfolio.errors import MalformedNameError, ProbeTimeoutError
from orgfolio.logging import get_logger, log_debug, log_warning

from .models import NormalizedProject
from .naming import parse_repo_name

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from orgfolio.github.models import RawRepository

logger = get_logger(__name__)

COVER_IMAGE_FILE = "img_cover.jpg"
_HTTP_OK = 200


class ImageProber(typ.Protocol):
    """Existence check for a remote image."""

    async def exists(self, url: str) -> bool:
        """Return True when ``url`` resolves to an existing resource."""
        ...


class CoverImageProber:
    """Bounded, time-limited HEAD probes for cover images."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        timeout_s: float = 3.0,
        ceiling_s: float = 5.0,
        concurrency: int = 8,
    ) -> None:
        """Configure the prober with a shared HTTP client and limits."""
        self._client = http_client
        self._timeout_s = timeout_s
        self._ceiling_s = ceiling_s
        self._semaphore = asyncio.Semaphore(concurrency)

    async def exists(self, url: str) -> bool:
        """Return True only when a HEAD request to ``url`` answers 200."""
        try:
            return await self._probe(url)
        except ProbeTimeoutError as exc:
            log_warning(logger, "Treating cover image as absent: %s", exc)
            return False
        except httpx.HTTPError as exc:
            log_debug(logger, "Cover image probe for %s failed: %s", url, exc)
            return False

    async def _probe(self, url: str) -> bool:
        async with self._semaphore:
            try:
                async with asyncio.timeout(self._ceiling_s):
                    response = await self._client.head(
                        url, timeout=self._timeout_s, follow_redirects=True
                    )
            except (TimeoutError, httpx.TimeoutException) as exc:
                limit = min(self._timeout_s, self._ceiling_s)
                raise ProbeTimeoutError(url, limit) from exc
        return response.status_code == _HTTP_OK


class RepositoryNormalizer:
    """Convert :class:`RawRepository` snapshots into :class:`NormalizedProject`."""

    def __init__(
        self, org: str, prober: ImageProber, *, pages_base_url: str | None = None
    ) -> None:
        """Bind the normaliser to an organisation and an image prober.

        ``pages_base_url`` defaults to the organisation's GitHub Pages host.
        """
        self._org = org
        self._prober = prober
        self._pages_base_url = (
            pages_base_url or OrgfolioConfig(github_org=org).pages_base_url
        ).rstrip("/")

    @classmethod
    def from_config(
        cls, config: OrgfolioConfig, http_client: httpx.AsyncClient
    ) -> RepositoryNormalizer:
        """Build a normaliser whose prober follows ``config`` limits."""
        prober = CoverImageProber(
            http_client,
            timeout_s=config.probe_timeout_s,
            ceiling_s=config.probe_ceiling_s,
            concurrency=config.probe_concurrency,
        )
        return cls(config.github_org, prober, pages_base_url=config.pages_base_url)

    def page_link(self, repo_name: str) -> str:
        """Return the canonical GitHub Pages URL for ``repo_name``."""
        return f"{self._pages_base_url}/{repo_name}"

    async def normalize(self, repo: RawRepository) -> NormalizedProject:
        """Return the project record for ``repo``.

        Raises
        ------
        MalformedNameError
            If the repository name does not follow the naming convention.

        """
        parsed = parse_repo_name(repo.name)

        page_link: str | None = None
        cover_img_link: str | None = None
        if repo.has_pages:
            page_link = self.page_link(repo.name)
            candidate = f"{page_link}/{COVER_IMAGE_FILE}"
            if await self._prober.exists(candidate):
                cover_img_link = candidate

        return NormalizedProject(
            repo_name=repo.name,
            name=parsed.short_name,
            title=parsed.title,
            organization=self._org,
            batch=parsed.batch,
            category_tag=parsed.category_tag,
            description=repo.description,
            repo_link=repo.html_url,
            page_link=page_link,
            cover_img_link=cover_img_link,
            private=repo.private,
            has_pages=repo.has_pages,
            has_wiki=repo.has_wiki,
            language=repo.language,
            forks=repo.forks,
            watchers=repo.watchers,
            stars=repo.stargazers_count,
            default_branch=repo.default_branch,
            repo_created=repo.created_at.date(),
            repo_updated=repo.updated_at,
        )

    async def normalize_many(
        self, repos: cabc.Iterable[RawRepository]
    ) -> dict[str, NormalizedProject]:
        """Normalise ``repos`` concurrently, skipping malformed names.

        The returned mapping preserves the input order regardless of the order
        in which probes complete.
        """
        ordered = list(repos)
        results = await asyncio.gather(
            *(self._normalize_or_none(repo) for repo in ordered)
        )
        return {
            repo.name: project
            for repo, project in zip(ordered, results, strict=True)
            if project is not None
        }

    async def _normalize_or_none(self, repo: RawRepository) -> NormalizedProject | None:
        try:
            return await self.normalize(repo)
        except MalformedNameError as exc:
            log_warning(logger, "Excluding repository from projects: %s", exc)
            return None


__all__ = [
    "COVER_IMAGE_FILE",
    "CoverImageProber",
    "ImageProber",
    "RepositoryNormalizer",
]
