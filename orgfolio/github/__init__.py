"""GitHub REST client and paginated repository fetcher."""

from __future__ import annotations

from .client import (
    GitHubRestClient,
    GitHubRestConfig,
    RepositoryInsightsProvider,
    RepositoryPageProvider,
)
from .errors import GitHubAPIError, GitHubConfigError, GitHubResponseShapeError
from .fetcher import RepositoryFetcher, RetryPolicy
from .models import Contributor, RawRepository, RepositoryPage

__all__ = [
    "Contributor",
    "GitHubAPIError",
    "GitHubConfigError",
    "GitHubResponseShapeError",
    "GitHubRestClient",
    "GitHubRestConfig",
    "RawRepository",
    "RepositoryFetcher",
    "RepositoryInsightsProvider",
    "RepositoryPage",
    "RepositoryPageProvider",
    "RetryPolicy",
]
