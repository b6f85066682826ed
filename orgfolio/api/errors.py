"""Falcon error handlers mapping domain errors onto HTTP responses.

Usage
-----
Register the handlers on the Falcon app::

    from orgfolio.api.errors import register_error_handlers

    register_error_handlers(app)

"""

from __future__ import annotations

import typing as typ

import falcon

from orgfolio.errors import FetchError, ProjectNotFoundError, SyncInProgressError
from orgfolio.github.errors import GitHubAPIError

if typ.TYPE_CHECKING:
    import falcon.asgi
    from falcon.asgi import Request, Response

__all__ = [
    "handle_github_error",
    "handle_project_not_found",
    "handle_sync_failed",
    "handle_sync_in_progress",
    "register_error_handlers",
]


async def handle_project_not_found(
    _req: Request,
    resp: Response,
    ex: ProjectNotFoundError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``ProjectNotFoundError`` to an HTTP 404 JSON response."""
    resp.status = falcon.HTTP_404
    resp.media = {
        "title": "Project not found",
        "description": str(ex),
    }


async def handle_sync_in_progress(
    _req: Request,
    resp: Response,
    ex: SyncInProgressError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``SyncInProgressError`` to an HTTP 409 JSON response.

    The rejected trigger is not queued; callers retry once the running sync
    finishes.
    """
    resp.status = falcon.HTTP_409
    resp.media = {
        "title": "Sync already running",
        "description": str(ex),
        "phase": str(ex.phase),
    }


async def handle_sync_failed(
    _req: Request,
    resp: Response,
    ex: FetchError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``FetchError`` to an HTTP 502 JSON response.

    Raised when a sync phase aborts because an upstream collection could not
    be fetched; committed data is unchanged.
    """
    resp.status = falcon.HTTP_502
    resp.media = {
        "title": "Upstream fetch failed",
        "description": str(ex),
        "source": ex.source,
    }


async def handle_github_error(
    _req: Request,
    resp: Response,
    ex: GitHubAPIError,
    _params: dict[str, typ.Any],
) -> None:
    """Map a failed live GitHub lookup to an HTTP 502 JSON response."""
    resp.status = falcon.HTTP_502
    media: dict[str, typ.Any] = {
        "title": "GitHub request failed",
        "description": str(ex),
    }
    if ex.status_code is not None:
        media["upstream_status"] = ex.status_code
    resp.media = media


def register_error_handlers(app: falcon.asgi.App) -> None:
    """Attach every domain error handler to ``app``."""
    app.add_error_handler(ProjectNotFoundError, handle_project_not_found)
    app.add_error_handler(SyncInProgressError, handle_sync_in_progress)
    app.add_error_handler(FetchError, handle_sync_failed)
    app.add_error_handler(GitHubAPIError, handle_github_error)
