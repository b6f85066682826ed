"""GitHub REST client errors."""

from __future__ import annotations

_HTTP_SERVER_ERROR_THRESHOLD = 500
_HTTP_TOO_MANY_REQUESTS = 429


class GitHubAPIError(RuntimeError):
    """Raised when GitHub returns an error response."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        rate_limited: bool = False,
    ) -> None:
        """Initialise with a message, HTTP status and rate-limit flag."""
        self.status_code = status_code
        self.rate_limited = rate_limited
        super().__init__(message)

    @classmethod
    def http_error(
        cls, status_code: int, url: str, *, rate_limited: bool = False
    ) -> GitHubAPIError:
        """Return an error for non-2xx HTTP responses."""
        return cls(
            f"GitHub REST HTTP {status_code} for {url}",
            status_code=status_code,
            rate_limited=rate_limited,
        )

    @property
    def is_transient(self) -> bool:
        """Return True when retrying the same request may succeed."""
        if self.rate_limited:
            return True
        if self.status_code is None:
            return False
        return (
            self.status_code >= _HTTP_SERVER_ERROR_THRESHOLD
            or self.status_code == _HTTP_TOO_MANY_REQUESTS
        )


class GitHubResponseShapeError(RuntimeError):
    """Raised when GitHub responses do not match the expected record shape."""

    @classmethod
    def invalid(cls, resource: str, detail: object) -> GitHubResponseShapeError:
        """Return an error describing an unexpected payload for ``resource``."""
        return cls(f"GitHub response for {resource} has unexpected shape: {detail}")


class GitHubConfigError(RuntimeError):
    """Raised when GitHub client configuration is invalid."""

    @classmethod
    def empty_token(cls) -> GitHubConfigError:
        """Return an error when a blank token is supplied explicitly."""
        return cls("GitHub token must be non-empty when provided")
