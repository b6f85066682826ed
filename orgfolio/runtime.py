"""orgfolio runtime entrypoint for container deployments.

This module provides the ASGI application factory used by Granian. It
delegates to :func:`orgfolio.api.app.create_app` and keeps the
``orgfolio.runtime:create_app`` entrypoint stable.

When ``ORGFOLIO_DATABASE_URL`` is set, the runtime builds the catalogue
service and the sync orchestrator, so the app serves projects and accepts
sync triggers. Otherwise it starts in health-only mode.

Configuration is driven by environment variables:

- ``ORGFOLIO_HOST``: Bind address (default ``0.0.0.0``)
- ``ORGFOLIO_PORT``: Listen port (default ``8080``)
- ``ORGFOLIO_LOG_LEVEL``: Log level (default ``INFO``)
- ``ORGFOLIO_DATABASE_URL``: Database connection URL (optional)
- ``ORGFOLIO_GITHUB_ORG`` and the other ``ORGFOLIO_*`` sync settings read by
  :meth:`orgfolio.config.OrgfolioConfig.from_env`

Run the service directly with ``python -m orgfolio.runtime``.
"""

from __future__ import annotations

import os
import typing as typ

import httpx

from orgfolio.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import falcon.asgi
    from sqlalchemy.ext.asyncio import AsyncEngine

__all__ = ["CatalogueLifespan", "create_app", "main"]

logger = get_logger(__name__)

_MIN_PORT = 1
_MAX_PORT = 65535
_HTTP_TIMEOUT_S = 20.0


def _parse_port(port_str: str) -> int:
    """Parse and validate a port number string.

    Raises
    ------
    SystemExit
        If port_str is not a valid integer in range 1-65535.

    """
    try:
        port = int(port_str)
    except ValueError as exc:
        log_error(logger, "Invalid ORGFOLIO_PORT value: %r: %s", port_str, exc)
        raise SystemExit(1) from exc
    if not (_MIN_PORT <= port <= _MAX_PORT):
        log_error(
            logger,
            "Invalid ORGFOLIO_PORT value: %r (must be %d-%d)",
            port_str,
            _MIN_PORT,
            _MAX_PORT,
        )
        raise SystemExit(1)
    return port


class CatalogueLifespan:
    """Falcon middleware owning the engine and HTTP client lifecycles.

    Tables are created on ASGI startup; the shared HTTP client is closed and
    the engine disposed on shutdown.
    """

    def __init__(self, engine: AsyncEngine, http_client: httpx.AsyncClient) -> None:
        """Store the resources to manage."""
        self._engine = engine
        self._http_client = http_client

    async def process_startup(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Create catalogue tables if they are missing."""
        from orgfolio.storage import init_catalogue_storage

        await init_catalogue_storage(self._engine)

    async def process_shutdown(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Release the HTTP client and database connections."""
        await self._http_client.aclose()
        await self._engine.dispose()


def create_app() -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    When ``ORGFOLIO_DATABASE_URL`` is set, wires the catalogue service and
    the sync orchestrator for ``ORGFOLIO_GITHUB_ORG``. Otherwise only
    ``/health`` and ``/ready`` are available.
    """
    from orgfolio.api.app import create_app as _create_api_app

    database_url = os.environ.get("ORGFOLIO_DATABASE_URL")

    if database_url is None:
        return _create_api_app()

    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from orgfolio.api.app import AppDependencies
    from orgfolio.config import ConfigError, OrgfolioConfig
    from orgfolio.github import GitHubRestClient, GitHubRestConfig
    from orgfolio.projects.service import ProjectCatalogueService
    from orgfolio.projects.sync import build_orchestrator

    try:
        config = OrgfolioConfig.from_env()
    except ConfigError as exc:
        log_error(logger, "Invalid sync configuration: %s", exc)
        raise SystemExit(1) from exc

    engine = create_async_engine(database_url)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    http_client = httpx.AsyncClient(timeout=_HTTP_TIMEOUT_S)
    github = GitHubRestClient(GitHubRestConfig.from_env(), http_client=http_client)

    deps = AppDependencies(
        session_factory=session_factory,
        catalogue=ProjectCatalogueService(session_factory, github, config.github_org),
        orchestrator=build_orchestrator(config, session_factory, http_client),
    )
    app = _create_api_app(deps)
    app.add_middleware(CatalogueLifespan(engine, http_client))
    return app


def main() -> None:
    """Start the orgfolio runtime server using Granian.

    Reads ``ORGFOLIO_HOST``, ``ORGFOLIO_PORT`` and ``ORGFOLIO_LOG_LEVEL``
    from the environment and starts the ASGI server.
    """
    from granian import Granian
    from granian.constants import Interfaces

    host = os.environ.get("ORGFOLIO_HOST", "0.0.0.0")  # noqa: S104 - bind all interfaces for container
    port = _parse_port(os.environ.get("ORGFOLIO_PORT", "8080"))
    log_level_str = os.environ.get("ORGFOLIO_LOG_LEVEL", "INFO")

    normalized_level, invalid_level = configure_logging(log_level_str)
    if invalid_level:
        log_warning(
            logger,
            "Invalid ORGFOLIO_LOG_LEVEL %r, falling back to %s",
            log_level_str,
            normalized_level,
        )

    log_info(
        logger,
        "Starting orgfolio runtime on %s:%d (log_level=%s)",
        host,
        port,
        normalized_level,
    )

    server = Granian(
        "orgfolio.runtime:create_app",
        address=host,
        port=port,
        interface=Interfaces.ASGI,
        factory=True,
    )
    server.serve()


if __name__ == "__main__":
    main()
