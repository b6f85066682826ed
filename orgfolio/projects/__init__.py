"""Repository naming, filtering, normalisation and project sync.

The lightweight building blocks are re-exported here. The orchestrator
(:mod:`orgfolio.projects.sync`), the read service
(:mod:`orgfolio.projects.service`) and the Dramatiq jobs
(:mod:`orgfolio.projects.actor`) depend on the category registry and are
imported from their own modules.

Usage
-----
Run both sync phases against a database::

    from orgfolio.projects.sync import build_orchestrator

    orchestrator = build_orchestrator(config, session_factory, http_client)
    await orchestrator.sync_categories()
    result = await orchestrator.sync_projects()

"""

from __future__ import annotations

from .filters import (
    DEFAULT_PROJECT_PATTERN,
    compile_pattern,
    invalid_patterns,
    is_project_name,
    matches,
    matches_any,
    select_matching,
)
from .models import (
    ContributorInfo,
    ContributorList,
    LanguageBreakdown,
    NormalizedProject,
    ProjectDetail,
    ProjectListing,
    ProjectSyncResult,
    ProjectView,
)
from .naming import ParsedName, format_title, parse_repo_name
from .normalizer import CoverImageProber, ImageProber, RepositoryNormalizer

__all__ = [
    "DEFAULT_PROJECT_PATTERN",
    "ContributorInfo",
    "ContributorList",
    "CoverImageProber",
    "ImageProber",
    "LanguageBreakdown",
    "NormalizedProject",
    "ParsedName",
    "ProjectDetail",
    "ProjectListing",
    "ProjectSyncResult",
    "ProjectView",
    "RepositoryNormalizer",
    "compile_pattern",
    "format_title",
    "invalid_patterns",
    "is_project_name",
    "matches",
    "matches_any",
    "parse_repo_name",
    "select_matching",
]
