"""Configuration for the sync pipeline.

Usage
-----
Create a configuration explicitly:

>>> config = OrgfolioConfig(github_org="cepdnaclk")
>>> config.pages_base_url
'https://cepdnaclk.github.io'

Or load it from environment variables:

>>> import os
>>> os.environ["ORGFOLIO_GITHUB_ORG"] = "cepdnaclk"
>>> config = OrgfolioConfig.from_env()

"""

from __future__ import annotations

import dataclasses as dc
import os

DEFAULT_CATEGORY_FEED_URL = "https://nuwanj.github.io/ce-projects-data-repository"


class ConfigError(ValueError):
    """Raised when environment configuration is missing or malformed."""


@dc.dataclass(frozen=True, slots=True)
class OrgfolioConfig:
    """Settings shared by the fetcher, normaliser and category registry.

    Attributes
    ----------
    github_org
        Organisation whose repositories are mirrored.
    category_feed_url
        Base URL of the category feed; ``/data/categories/...`` is appended.
    probe_timeout_s
        httpx timeout applied to each cover-image HEAD request.
    probe_ceiling_s
        Hard deadline for a single probe, including connection pool waits.
    probe_concurrency
        Maximum number of cover-image probes in flight.
    fetch_max_attempts
        Attempts per repository page before the fetch fails.
    fetch_backoff_s
        Base delay for exponential backoff between page attempts.
    fetch_max_backoff_s
        Upper bound for a single backoff delay.
    page_size
        Repositories requested per page.
    sync_lock_ttl_s
        Seconds before an unreleased sync lock claim counts as abandoned.

    """

    github_org: str
    category_feed_url: str = DEFAULT_CATEGORY_FEED_URL
    probe_timeout_s: float = 3.0
    probe_ceiling_s: float = 5.0
    probe_concurrency: int = 8
    fetch_max_attempts: int = 3
    fetch_backoff_s: float = 0.5
    fetch_max_backoff_s: float = 8.0
    page_size: int = 100
    sync_lock_ttl_s: float = 3600.0

    @property
    def pages_base_url(self) -> str:
        """Return the GitHub Pages host serving the organisation's sites."""
        return f"https://{self.github_org}.github.io"

    @staticmethod
    def _parse_positive_int(env_var: str, default: int) -> int:
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            value = int(raw)
        except ValueError as exc:
            msg = f"{env_var} must be an integer, got: {raw!r}"
            raise ConfigError(msg) from exc
        if value < 1:
            msg = f"{env_var} must be positive, got: {value}"
            raise ConfigError(msg)
        return value

    @staticmethod
    def _parse_positive_float(env_var: str, default: float) -> float:
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            value = float(raw)
        except ValueError as exc:
            msg = f"{env_var} must be a number, got: {raw!r}"
            raise ConfigError(msg) from exc
        if value <= 0:
            msg = f"{env_var} must be positive, got: {value}"
            raise ConfigError(msg)
        return value

    @classmethod
    def from_env(cls) -> OrgfolioConfig:
        """Create configuration from ``ORGFOLIO_*`` environment variables.

        Reads ``ORGFOLIO_GITHUB_ORG`` (required),
        ``ORGFOLIO_CATEGORY_FEED_URL``, ``ORGFOLIO_PROBE_TIMEOUT_S``,
        ``ORGFOLIO_PROBE_CEILING_S``, ``ORGFOLIO_PROBE_CONCURRENCY``,
        ``ORGFOLIO_FETCH_MAX_ATTEMPTS``, ``ORGFOLIO_FETCH_BACKOFF_S``,
        ``ORGFOLIO_FETCH_MAX_BACKOFF_S``, ``ORGFOLIO_PAGE_SIZE`` and
        ``ORGFOLIO_SYNC_LOCK_TTL_S``.

        Raises
        ------
        ConfigError
            If the organisation is unset or a numeric value is invalid.

        """
        github_org = os.environ.get("ORGFOLIO_GITHUB_ORG", "").strip()
        if not github_org:
            msg = "ORGFOLIO_GITHUB_ORG is required"
            raise ConfigError(msg)

        feed_url = os.environ.get("ORGFOLIO_CATEGORY_FEED_URL", "").strip()

        return cls(
            github_org=github_org,
            category_feed_url=(feed_url or DEFAULT_CATEGORY_FEED_URL).rstrip("/"),
            probe_timeout_s=cls._parse_positive_float("ORGFOLIO_PROBE_TIMEOUT_S", 3.0),
            probe_ceiling_s=cls._parse_positive_float("ORGFOLIO_PROBE_CEILING_S", 5.0),
            probe_concurrency=cls._parse_positive_int("ORGFOLIO_PROBE_CONCURRENCY", 8),
            fetch_max_attempts=cls._parse_positive_int(
                "ORGFOLIO_FETCH_MAX_ATTEMPTS", 3
            ),
            fetch_backoff_s=cls._parse_positive_float("ORGFOLIO_FETCH_BACKOFF_S", 0.5),
            fetch_max_backoff_s=cls._parse_positive_float(
                "ORGFOLIO_FETCH_MAX_BACKOFF_S", 8.0
            ),
            page_size=cls._parse_positive_int("ORGFOLIO_PAGE_SIZE", 100),
            sync_lock_ttl_s=cls._parse_positive_float(
                "ORGFOLIO_SYNC_LOCK_TTL_S", 3600.0
            ),
        )


__all__ = ["DEFAULT_CATEGORY_FEED_URL", "ConfigError", "OrgfolioConfig"]
