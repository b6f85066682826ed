"""Error taxonomy for the discovery, filtering and reconciliation pipeline.

Per-item errors (:class:`MalformedNameError`, :class:`InvalidPatternError`,
:class:`FeedDocumentError`, :class:`ProbeTimeoutError`) are isolated by the
component that catches them. Phase-level errors (:class:`FetchError`,
:class:`SyncInProgressError`) abort the current sync phase before any write.
"""

from __future__ import annotations


class OrgfolioError(Exception):
    """Base class for orgfolio domain errors."""


class MalformedNameError(OrgfolioError):
    """Raised when a repository name does not follow ``{batch}-{tag}-{rest}``."""

    def __init__(self, name: str) -> None:
        """Initialise with the offending repository name."""
        self.name = name
        super().__init__(
            f"Repository name {name!r} does not follow the batch-tag-title convention"
        )


class InvalidPatternError(OrgfolioError):
    """Raised when a filter pattern is not a valid regular expression."""

    def __init__(self, pattern: str, reason: str) -> None:
        """Initialise with the pattern and the compiler's complaint."""
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid filter pattern {pattern!r}: {reason}")


class FetchError(OrgfolioError):
    """Raised when an external collection cannot be retrieved in full."""

    def __init__(self, source: str, reason: str) -> None:
        """Initialise with the source being fetched and the failure reason."""
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to fetch {source}: {reason}")


class FeedDocumentError(OrgfolioError):
    """Raised when a category detail document is missing or invalid."""

    def __init__(self, key: str, reason: str) -> None:
        """Initialise with the category key and the failure reason."""
        self.key = key
        self.reason = reason
        super().__init__(f"Category document {key!r} rejected: {reason}")


class ProbeTimeoutError(OrgfolioError):
    """Raised internally when a cover-image probe exceeds its deadline."""

    def __init__(self, url: str, timeout_s: float) -> None:
        """Initialise with the probed URL and the deadline that expired."""
        self.url = url
        self.timeout_s = timeout_s
        super().__init__(f"Probe of {url} exceeded {timeout_s:g}s")


class SyncInProgressError(OrgfolioError):
    """Raised when a sync is triggered while another is still running."""

    def __init__(self, phase: str) -> None:
        """Initialise with the phase that was rejected."""
        self.phase = phase
        super().__init__(f"Cannot start {phase} sync: another sync is running")


class ProjectNotFoundError(OrgfolioError):
    """Raised when a project is not present in the committed catalogue."""

    def __init__(self, repo_name: str) -> None:
        """Initialise with the missing repository name."""
        self.repo_name = repo_name
        super().__init__(f"Project not found: {repo_name}")


__all__ = [
    "FeedDocumentError",
    "FetchError",
    "InvalidPatternError",
    "MalformedNameError",
    "OrgfolioError",
    "ProbeTimeoutError",
    "ProjectNotFoundError",
    "SyncInProgressError",
]
