"""Seed a catalogue database by running both sync phases against a fake."""

from __future__ import annotations

import typing as typ

from orgfolio.projects.sync import build_orchestrator
from tests.helpers.upstream import category_document, make_config, repo_payload

if typ.TYPE_CHECKING:
    import httpx
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from tests.helpers.upstream import FakeUpstream


def stock_upstream(upstream: FakeUpstream) -> None:
    """Load ``upstream`` with two categories and a handful of repositories."""
    upstream.categories = {
        "ml": category_document("ml", [r"e\d{2}-ml-"], title="Machine Learning"),
        "web": category_document("web", [r"e\d{2}-web-"], title="Web"),
    }
    upstream.set_repositories(
        [
            repo_payload("e17-ml-vision", has_pages=True, stars=4),
            repo_payload("e17-web-portal", language="TypeScript"),
        ],
        [repo_payload("e18-ml-speech"), repo_payload("docs-site")],
    )
    upstream.covers.add("e17-ml-vision")
    upstream.contributors["e17-ml-vision"] = [
        {
            "login": "kasun",
            "avatar_url": "https://avatars.example.test/kasun.png",
            "html_url": "https://github.com/kasun",
            "contributions": 12,
        }
    ]
    upstream.languages["e17-ml-vision"] = {"Python": 3000, "Jupyter Notebook": 1000}


async def seed_catalogue(
    upstream: FakeUpstream,
    session_factory: async_sessionmaker[AsyncSession],
    client: httpx.AsyncClient,
) -> None:
    """Commit categories and projects served by ``upstream``."""
    orchestrator = build_orchestrator(make_config(), session_factory, client)
    await orchestrator.sync_categories()
    await orchestrator.sync_projects()
