"""Application factory for the orgfolio Falcon ASGI application.

Usage
-----
Create a health-only app (no database)::

    app = create_app()

Create the full catalogue app::

    from orgfolio.api.app import AppDependencies, create_app

    deps = AppDependencies(
        session_factory=session_factory,
        catalogue=ProjectCatalogueService(session_factory, github, "cepdnaclk"),
        orchestrator=orchestrator,
    )
    app = create_app(deps)

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from orgfolio.api.errors import register_error_handlers
from orgfolio.api.health.resources import HealthResource, ReadyResource
from orgfolio.api.projects.resources import (
    CategoriesResource,
    ProjectResource,
    ProjectsResource,
    SyncResource,
)
from orgfolio.projects.observability import SyncPhase

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from orgfolio.projects.service import ProjectCatalogueService
    from orgfolio.projects.sync import SyncOrchestrator

__all__ = ["AppDependencies", "create_app"]


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Dependencies for the Falcon ASGI application.

    Attributes
    ----------
    session_factory
        Async session factory, used by the readiness probe.
    catalogue
        Read-side service; enables ``/projects`` and ``/categories``.
    orchestrator
        Sync orchestrator; enables the ``/sync/*`` triggers. Sync routes are
        omitted when it is ``None`` so read-only replicas cannot run syncs.

    """

    session_factory: async_sessionmaker[AsyncSession] | None = None
    catalogue: ProjectCatalogueService | None = None
    orchestrator: SyncOrchestrator | None = None


def create_app(
    dependencies: AppDependencies | None = None,
) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    ``/health`` and ``/ready`` are always registered; catalogue and sync
    routes are added for the dependencies that are present.
    """
    deps = dependencies or AppDependencies()
    app = falcon.asgi.App()  # type: ignore[no-matching-overload]  # Falcon stubs

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(deps.session_factory))

    if deps.catalogue is not None:
        app.add_route("/projects", ProjectsResource(deps.catalogue))
        app.add_route("/projects/{repo_name}", ProjectResource(deps.catalogue))
        app.add_route("/categories", CategoriesResource(deps.catalogue))

    if deps.orchestrator is not None:
        app.add_route(
            "/sync/categories", SyncResource(deps.orchestrator, SyncPhase.CATEGORIES)
        )
        app.add_route(
            "/sync/projects", SyncResource(deps.orchestrator, SyncPhase.PROJECTS)
        )

    register_error_handlers(app)
    return app
