"""Read side of the project catalogue.

Reads only ever see committed data, so a sync in progress never produces an
empty or half-written listing. Project details are enriched on demand with
contributor and language data fetched live from GitHub; that data is never
persisted.
"""

from __future__ import annotations

import typing as typ

import httpx
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from orgfolio.categories.registry import to_category_definition
from orgfolio.errors import ProjectNotFoundError
from orgfolio.github.errors import GitHubAPIError, GitHubResponseShapeError
from orgfolio.logging import get_logger, log_warning
from orgfolio.storage import CategoryRecord, ProjectRecord

from .models import (
    ContributorInfo,
    ContributorList,
    LanguageBreakdown,
    ProjectDetail,
    ProjectListing,
    ProjectView,
)

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from orgfolio.categories.models import CategoryDefinition
    from orgfolio.github.client import RepositoryInsightsProvider

type SessionFactory = async_sessionmaker[AsyncSession]

logger = get_logger(__name__)


def to_project_view(record: ProjectRecord) -> ProjectView:
    """Convert a stored project row, with categories loaded, into a view."""
    return ProjectView(
        repo_name=record.repo_name,
        name=record.name,
        title=record.title,
        organization=record.organization,
        batch=record.batch,
        category_tag=record.category_tag,
        main_category=record.main_category,
        categories=[category.category_code for category in record.categories],
        repo_link=record.repo_link,
        private=record.private,
        has_pages=record.has_pages,
        has_wiki=record.has_wiki,
        forks=record.forks,
        watchers=record.watchers,
        stars=record.stars,
        default_branch=record.default_branch,
        repo_created=record.repo_created,
        repo_updated=record.repo_updated,
        description=record.description,
        language=record.language,
        page_link=record.page_link,
        cover_img_link=record.cover_img_link,
        image=record.image,
        thumbnail=record.thumbnail,
    )


class ProjectCatalogueService:
    """Serve committed projects and categories.

    Parameters
    ----------
    session_factory:
        Async session factory for the catalogue database.
    insights:
        Provider used for live contributor and language lookups.
    organization:
        Organisation owning the catalogued repositories.

    """

    def __init__(
        self,
        session_factory: SessionFactory,
        insights: RepositoryInsightsProvider,
        organization: str,
    ) -> None:
        """Configure the service."""
        self._session_factory = session_factory
        self._insights = insights
        self._organization = organization

    async def list_projects(self, category_code: str | None = None) -> ProjectListing:
        """Return committed projects ordered by repository name.

        When ``category_code`` is given only projects associated with that
        category are returned; an unknown code yields an empty listing.
        """
        query = select(ProjectRecord).options(selectinload(ProjectRecord.categories))
        if category_code is not None:
            query = query.where(
                ProjectRecord.categories.any(
                    CategoryRecord.category_code == category_code
                )
            )
        query = query.order_by(ProjectRecord.repo_name)

        async with self._session_factory() as session:
            records = (await session.scalars(query)).all()
            projects = [to_project_view(record) for record in records]
        return ProjectListing(count=len(projects), projects=projects)

    async def get_project(self, repo_name: str) -> ProjectDetail:
        """Return one project with live contributors and languages.

        Raises
        ------
        ProjectNotFoundError
            If ``repo_name`` is not in the committed catalogue.
        GitHubAPIError
            If the contributor lookup fails.

        """
        async with self._session_factory() as session:
            record = await session.scalar(
                select(ProjectRecord)
                .options(selectinload(ProjectRecord.categories))
                .where(ProjectRecord.repo_name == repo_name)
            )
            if record is None:
                raise ProjectNotFoundError(repo_name)
            project = to_project_view(record)

        organization = project.organization or self._organization
        contributors = await self._insights.list_contributors(organization, repo_name)
        return ProjectDetail(
            project=project,
            contributors=ContributorList(
                count=len(contributors),
                contributors=[
                    ContributorInfo(
                        username=contributor.login,
                        avatar=contributor.avatar_url,
                        url=contributor.html_url,
                        contributions=contributor.contributions,
                    )
                    for contributor in contributors
                ],
            ),
            languages=await self._languages(organization, repo_name),
        )

    async def list_categories(self) -> list[CategoryDefinition]:
        """Return the committed categories in registry order."""
        async with self._session_factory() as session:
            records = await session.scalars(
                select(CategoryRecord).order_by(CategoryRecord.position)
            )
            return [to_category_definition(record) for record in records]

    async def _languages(self, organization: str, repo_name: str) -> LanguageBreakdown:
        try:
            languages = await self._insights.get_languages(organization, repo_name)
        except (GitHubAPIError, GitHubResponseShapeError, httpx.HTTPError) as exc:
            log_warning(
                logger, "Language lookup for %s failed: %s", repo_name, exc
            )
            return LanguageBreakdown()
        return LanguageBreakdown(
            count=len(languages),
            total=sum(languages.values()),
            languages=dict(languages),
        )


__all__ = ["ProjectCatalogueService", "to_project_view"]
