"""Data transfer objects for project normalisation, sync and reads."""

from __future__ import annotations

import dataclasses
import datetime as dt  # noqa: TC003

import msgspec


class NormalizedProject(msgspec.Struct, frozen=True, kw_only=True):
    """Canonical project record derived from one repository.

    Image fallbacks are not applied here; they depend on the category that
    claims the project and are resolved during project sync.
    """

    repo_name: str
    name: str
    title: str
    organization: str
    batch: str
    category_tag: str
    repo_link: str
    private: bool
    has_pages: bool
    has_wiki: bool
    forks: int
    watchers: int
    stars: int
    default_branch: str
    repo_created: dt.date
    repo_updated: dt.datetime
    description: str | None = None
    language: str | None = None
    page_link: str | None = None
    cover_img_link: str | None = None


class ProjectView(msgspec.Struct, frozen=True, kw_only=True):
    """Committed project as returned by the read side."""

    repo_name: str
    name: str
    title: str
    organization: str
    batch: str
    category_tag: str
    main_category: str
    categories: list[str]
    repo_link: str
    private: bool
    has_pages: bool
    has_wiki: bool
    forks: int
    watchers: int
    stars: int
    default_branch: str
    repo_created: dt.date
    repo_updated: dt.datetime
    description: str | None = None
    language: str | None = None
    page_link: str | None = None
    cover_img_link: str | None = None
    image: str | None = None
    thumbnail: str | None = None


class ContributorInfo(msgspec.Struct, frozen=True, kw_only=True):
    """Contributor summary exposed with project details."""

    username: str
    avatar: str
    url: str
    contributions: int = 0


class LanguageBreakdown(msgspec.Struct, frozen=True, kw_only=True):
    """Bytes of code per language for a repository."""

    count: int = 0
    total: int = 0
    languages: dict[str, int] = msgspec.field(default_factory=dict, name="list")


class ContributorList(msgspec.Struct, frozen=True, kw_only=True):
    """Contributors of a repository with their count."""

    count: int = 0
    contributors: list[ContributorInfo] = msgspec.field(
        default_factory=list, name="list"
    )


class ProjectDetail(msgspec.Struct, frozen=True, kw_only=True):
    """Committed project enriched with live contributor and language data."""

    project: ProjectView
    contributors: ContributorList
    languages: LanguageBreakdown


class ProjectListing(msgspec.Struct, frozen=True, kw_only=True):
    """Result of listing projects, optionally scoped to one category."""

    count: int
    projects: list[ProjectView]


@dataclasses.dataclass(slots=True)
class ProjectSyncResult:
    """Summary of a project-sync run.

    ``malformed`` lists repository names that passed a filter but could not
    be normalised; ``associations`` counts project-category links written.
    """

    organization: str
    repositories_fetched: int = 0
    repositories_gated_out: int = 0
    projects_written: int = 0
    associations: int = 0
    malformed: list[str] = dataclasses.field(default_factory=list)


__all__ = [
    "ContributorInfo",
    "ContributorList",
    "LanguageBreakdown",
    "NormalizedProject",
    "ProjectDetail",
    "ProjectListing",
    "ProjectSyncResult",
    "ProjectView",
]
