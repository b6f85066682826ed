"""Falcon resources for the project catalogue.

Routes
------
``GET /projects[?category=code]``
    Committed projects ordered by repository name, optionally scoped to one
    category.
``GET /projects/{repo_name}``
    One project with live contributor and language data.
``GET /categories``
    Committed categories in registry order.
``POST /sync/categories`` and ``POST /sync/projects``
    Run a sync phase and return its summary; 409 while another sync runs.

"""

from __future__ import annotations

import dataclasses
import typing as typ

import falcon
import msgspec

from orgfolio.logging import get_logger, log_info
from orgfolio.projects.observability import SyncPhase

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from orgfolio.projects.service import ProjectCatalogueService
    from orgfolio.projects.sync import SyncOrchestrator

__all__ = [
    "CategoriesResource",
    "ProjectResource",
    "ProjectsResource",
    "SyncResource",
]

logger = get_logger(__name__)


def _to_media(value: object) -> typ.Any:  # noqa: ANN401 - JSON-compatible tree
    """Convert structs and dataclasses into JSON-compatible builtins."""
    return msgspec.to_builtins(value)


class ProjectsResource:
    """``GET /projects`` listing, optionally filtered by ``?category=``."""

    def __init__(self, catalogue: ProjectCatalogueService) -> None:
        """Bind the resource to the catalogue service."""
        self._catalogue = catalogue

    async def on_get(self, req: Request, resp: Response) -> None:
        """Return ``{"count": n, "projects": [...]}``."""
        category = req.get_param("category")
        listing = await self._catalogue.list_projects(category or None)
        resp.media = _to_media(listing)
        resp.status = falcon.HTTP_200


class ProjectResource:
    """``GET /projects/{repo_name}`` detail with live enrichment."""

    def __init__(self, catalogue: ProjectCatalogueService) -> None:
        """Bind the resource to the catalogue service."""
        self._catalogue = catalogue

    async def on_get(self, _req: Request, resp: Response, *, repo_name: str) -> None:
        """Return the project plus ``contributors`` and ``languages``."""
        detail = await self._catalogue.get_project(repo_name)
        resp.media = _to_media(detail)
        resp.status = falcon.HTTP_200


class CategoriesResource:
    """``GET /categories`` listing of committed categories."""

    def __init__(self, catalogue: ProjectCatalogueService) -> None:
        """Bind the resource to the catalogue service."""
        self._catalogue = catalogue

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Return ``{"count": n, "categories": [...]}``."""
        categories = await self._catalogue.list_categories()
        resp.media = {
            "count": len(categories),
            "categories": _to_media(categories),
        }
        resp.status = falcon.HTTP_200


class SyncResource:
    """``POST /sync/{phase}`` trigger for one sync phase."""

    def __init__(self, orchestrator: SyncOrchestrator, phase: SyncPhase) -> None:
        """Bind the resource to the orchestrator and the phase it runs."""
        self._orchestrator = orchestrator
        self._phase = phase

    async def on_post(self, _req: Request, resp: Response) -> None:
        """Run the phase to completion and return its summary."""
        log_info(logger, "Sync of %s triggered over HTTP", self._phase)
        if self._phase is SyncPhase.CATEGORIES:
            result = await self._orchestrator.sync_categories()
        else:
            result = await self._orchestrator.sync_projects()
        resp.media = {"phase": str(self._phase), **dataclasses.asdict(result)}
        resp.status = falcon.HTTP_200
