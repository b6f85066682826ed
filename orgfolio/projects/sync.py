"""Two-phase reconciliation of categories and projects.

Category sync commits the feed's categories; project sync reads those
committed categories, fetches the organisation's repositories once and
rebuilds the project set from the repositories each category claims.

Both phases perform destructive replace-all writes, so they are serialised by
the database-backed :class:`SyncRunLock`, which every process sharing the
catalogue contends for. An :class:`asyncio.Lock` turns away a second trigger
in the same process before it reaches the database. A trigger arriving while
either phase is running is rejected with :class:`SyncInProgressError` rather
than queued.
"""

from __future__ import annotations

import asyncio
import dataclasses
import typing as typ

import httpx
import msgspec
from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from orgfolio.categories import CategoryFeedClient, CategoryRegistry
from orgfolio.categories.models import CategorySyncResult
from orgfolio.common.clock import Clock, utcnow
from orgfolio.config import OrgfolioConfig
from orgfolio.errors import SyncInProgressError
from orgfolio.github import (
    GitHubRestClient,
    GitHubRestConfig,
    RepositoryFetcher,
    RetryPolicy,
)
from orgfolio.logging import get_logger, log_info
from orgfolio.storage import (
    CategoryRecord,
    ProjectRecord,
    init_catalogue_storage,
    project_categories,
)

from .filters import is_project_name, select_matching
from .locking import SyncRunLock
from .models import ProjectSyncResult
from .normalizer import RepositoryNormalizer
from .observability import SyncEventLogger, SyncPhase, SyncRunContext

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from sqlalchemy.ext.asyncio import AsyncSession

    from orgfolio.categories.models import CategoryDefinition
    from orgfolio.github.models import RawRepository

    from .models import NormalizedProject

type SessionFactory = async_sessionmaker[AsyncSession]

logger = get_logger(__name__)

_HTTP_TIMEOUT_S = 20.0


@dataclasses.dataclass(slots=True)
class _ClaimedProject:
    """Project together with the categories that claimed it during a run."""

    project: NormalizedProject
    main_category: str
    image: str | None
    thumbnail: str | None
    category_codes: list[str] = dataclasses.field(default_factory=list)

    def claim(self, category: CategoryDefinition) -> None:
        """Record ``category`` as the latest category to match the project."""
        cover = self.project.cover_img_link
        self.main_category = category.code
        self.image = cover or category.cover_image
        self.thumbnail = cover or category.thumb_image
        if category.code not in self.category_codes:
            self.category_codes.append(category.code)

    def to_record(self) -> ProjectRecord:
        """Build the ORM row for this project."""
        return ProjectRecord(
            **msgspec.structs.asdict(self.project),
            main_category=self.main_category,
            image=self.image,
            thumbnail=self.thumbnail,
        )


def _new_claim(
    project: NormalizedProject, category: CategoryDefinition
) -> _ClaimedProject:
    claimed = _ClaimedProject(
        project=project, main_category=category.code, image=None, thumbnail=None
    )
    claimed.claim(category)
    return claimed


class SyncOrchestrator:
    """Run category sync and project sync as serialised phases.

    Parameters
    ----------
    organization:
        GitHub organisation whose repositories are reconciled.
    registry:
        Category registry used for both the reload and the committed read.
    fetcher:
        Paginated repository fetcher.
    normalizer:
        Normaliser turning repositories into project records.
    session_factory:
        Async session factory for the catalogue database.
    event_logger:
        Structured sync event sink; defaults to :class:`SyncEventLogger`.
    clock:
        Source of the current time, injectable for tests.
    run_lock:
        Cross-process run lock; defaults to one on ``session_factory``.

    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        organization: str,
        registry: CategoryRegistry,
        fetcher: RepositoryFetcher,
        normalizer: RepositoryNormalizer,
        session_factory: SessionFactory,
        event_logger: SyncEventLogger | None = None,
        clock: Clock = utcnow,
        run_lock: SyncRunLock | None = None,
    ) -> None:
        """Wire the orchestrator to its collaborators."""
        self._organization = organization
        self._registry = registry
        self._fetcher = fetcher
        self._normalizer = normalizer
        self._session_factory = session_factory
        self._events = event_logger or SyncEventLogger()
        self._clock = clock
        self._lock = asyncio.Lock()
        self._run_lock = run_lock or SyncRunLock(session_factory, clock=clock)

    @property
    def is_running(self) -> bool:
        """Return True while this orchestrator is running a phase."""
        return self._lock.locked()

    async def sync_categories(self) -> CategorySyncResult:
        """Reload categories from the feed and commit them.

        Raises
        ------
        SyncInProgressError
            If another sync phase is running.
        FetchError
            If the feed manifest cannot be read; stored categories are kept.

        """
        async with self._exclusive(SyncPhase.CATEGORIES) as context:
            try:
                reloaded = await self._registry.reload()
                for skipped in reloaded.skipped:
                    self._events.log_item_skipped(context, skipped.key, skipped.reason)
                kept = await self._registry.commit(reloaded.categories)
            except BaseException as exc:
                self._events.log_run_failed(
                    context, exc, self._clock() - context.started_at
                )
                raise

            result = CategorySyncResult(
                loaded=[category.code for category in reloaded.categories],
                skipped=list(reloaded.skipped),
                associations_kept=kept,
            )
            self._events.log_categories_completed(
                context, result, self._clock() - context.started_at
            )
            return result

    async def sync_projects(self) -> ProjectSyncResult:
        """Rebuild the project set from the committed categories.

        Raises
        ------
        SyncInProgressError
            If another sync phase is running.
        FetchError
            If the repository collection cannot be fetched in full; stored
            projects are kept.

        """
        async with self._exclusive(SyncPhase.PROJECTS) as context:
            try:
                result = await self._sync_projects(context)
            except BaseException as exc:
                self._events.log_run_failed(
                    context, exc, self._clock() - context.started_at
                )
                raise

            self._events.log_projects_completed(
                context, result, self._clock() - context.started_at
            )
            return result

    def _exclusive(self, phase: SyncPhase) -> _PhaseGuard:
        context = SyncRunContext(
            phase=phase,
            organization=self._organization,
            started_at=self._clock(),
        )
        return _PhaseGuard(self._lock, self._run_lock, context, self._events)

    async def _sync_projects(self, context: SyncRunContext) -> ProjectSyncResult:
        result = ProjectSyncResult(organization=self._organization)
        categories = await self._registry.list_categories()
        repositories = await self._fetcher.fetch_all(self._organization)
        result.repositories_fetched = len(repositories)

        candidates: dict[str, RawRepository] = {}
        for repo in repositories:
            if is_project_name(repo.name):
                candidates[repo.name] = repo
            else:
                result.repositories_gated_out += 1

        normalized: dict[str, NormalizedProject | None] = {}
        claimed: dict[str, _ClaimedProject] = {}
        for category in categories:
            names = select_matching(candidates, category.filters)
            await self._normalize_pending(
                [candidates[name] for name in names if name not in normalized],
                normalized,
                result,
                context,
            )
            for name in names:
                project = normalized[name]
                if project is None:
                    continue
                if name in claimed:
                    claimed[name].claim(category)
                else:
                    claimed[name] = _new_claim(project, category)

        result.projects_written = len(claimed)
        result.associations = await self._replace_projects(claimed.values())
        log_info(
            logger,
            "Rebuilt %d projects across %d categories",
            result.projects_written,
            len(categories),
        )
        return result

    async def _normalize_pending(
        self,
        pending: list[RawRepository],
        normalized: dict[str, NormalizedProject | None],
        result: ProjectSyncResult,
        context: SyncRunContext,
    ) -> None:
        if not pending:
            return
        projects = await self._normalizer.normalize_many(pending)
        for repo in pending:
            project = projects.get(repo.name)
            normalized[repo.name] = project
            if project is None:
                result.malformed.append(repo.name)
                self._events.log_item_skipped(
                    context, repo.name, "malformed repository name"
                )

    async def _replace_projects(self, claimed: cabc.Iterable[_ClaimedProject]) -> int:
        async with self._session_factory() as session, session.begin():
            category_ids = {
                code: category_id
                for code, category_id in (
                    await session.execute(
                        select(CategoryRecord.category_code, CategoryRecord.id)
                    )
                ).all()
            }

            await session.execute(delete(project_categories))
            await session.execute(delete(ProjectRecord))

            pairs = [(entry, entry.to_record()) for entry in claimed]
            session.add_all([record for _, record in pairs])
            await session.flush()

            links = [
                {"project_id": record.id, "category_id": category_ids[code]}
                for entry, record in pairs
                for code in entry.category_codes
                if code in category_ids
            ]
            if links:
                await session.execute(insert(project_categories), links)
        return len(links)


class _PhaseGuard:
    """Async context manager holding both sync locks for one phase."""

    def __init__(
        self,
        lock: asyncio.Lock,
        run_lock: SyncRunLock,
        context: SyncRunContext,
        events: SyncEventLogger,
    ) -> None:
        self._lock = lock
        self._run_lock = run_lock
        self._context = context
        self._events = events
        self._token: str | None = None

    async def __aenter__(self) -> SyncRunContext:
        if self._lock.locked():
            error = SyncInProgressError(self._context.phase)
            self._events.log_run_rejected(self._context, error)
            raise error
        await self._lock.acquire()
        try:
            self._token = await self._run_lock.acquire(self._context.phase)
        except SyncInProgressError as exc:
            self._lock.release()
            self._events.log_run_rejected(self._context, exc)
            raise
        except BaseException:
            self._lock.release()
            raise
        self._events.log_run_started(self._context)
        return self._context

    async def __aexit__(self, *exc_info: object) -> None:
        try:
            if self._token is not None:
                await self._run_lock.release(self._token)
        finally:
            self._lock.release()


def build_orchestrator(
    config: OrgfolioConfig,
    session_factory: SessionFactory,
    http_client: httpx.AsyncClient,
) -> SyncOrchestrator:
    """Assemble a :class:`SyncOrchestrator` from configuration.

    The GitHub client, the category feed and the cover-image prober all share
    ``http_client``; the caller owns its lifecycle.
    """
    rest_config = dataclasses.replace(
        GitHubRestConfig.from_env(), page_size=config.page_size
    )
    provider = GitHubRestClient(rest_config, http_client=http_client)
    fetcher = RepositoryFetcher(
        provider,
        retry=RetryPolicy(
            max_attempts=config.fetch_max_attempts,
            backoff_s=config.fetch_backoff_s,
            max_backoff_s=config.fetch_max_backoff_s,
        ),
    )
    feed = CategoryFeedClient(config.category_feed_url, http_client)
    return SyncOrchestrator(
        organization=config.github_org,
        registry=CategoryRegistry(feed, session_factory),
        fetcher=fetcher,
        normalizer=RepositoryNormalizer.from_config(config, http_client),
        session_factory=session_factory,
        run_lock=SyncRunLock(session_factory, ttl_s=config.sync_lock_ttl_s),
    )


async def run_sync_phase(
    database_url: str,
    phase: SyncPhase,
    *,
    config: OrgfolioConfig | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> CategorySyncResult | ProjectSyncResult:
    """Run one sync phase against ``database_url`` with its own resources.

    Parameters
    ----------
    database_url
        SQLAlchemy URL of the catalogue database. Tables are created if
        missing.
    phase
        Which phase to run.
    config
        Sync configuration; read from the environment when omitted.
    http_client
        Client shared by the GitHub, feed and probe requests. A client is
        created and closed around the run when omitted.

    """
    config = config or OrgfolioConfig.from_env()
    engine = create_async_engine(database_url)
    owns_client = http_client is None
    client = http_client or httpx.AsyncClient(timeout=_HTTP_TIMEOUT_S)
    try:
        await init_catalogue_storage(engine)
        session_factory = async_sessionmaker(engine, expire_on_commit=False)
        orchestrator = build_orchestrator(config, session_factory, client)
        if phase is SyncPhase.CATEGORIES:
            return await orchestrator.sync_categories()
        return await orchestrator.sync_projects()
    finally:
        if owns_client:
            await client.aclose()
        await engine.dispose()


__all__ = ["SyncOrchestrator", "build_orchestrator", "run_sync_phase"]
