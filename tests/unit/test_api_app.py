"""Unit tests for orgfolio.api.app application factory.

Usage
-----
Run with pytest::

    pytest tests/unit/test_api_app.py

"""

from __future__ import annotations

import datetime as dt
from unittest import mock

import falcon.asgi
import falcon.testing
import pytest
from sqlalchemy.exc import OperationalError

from orgfolio.api.app import AppDependencies, create_app
from orgfolio.categories.models import (
    CategoryDefinition,
    CategorySyncResult,
    SkippedCategory,
)
from orgfolio.errors import FetchError, ProjectNotFoundError, SyncInProgressError
from orgfolio.github.errors import GitHubAPIError
from orgfolio.projects.models import (
    ContributorInfo,
    ContributorList,
    LanguageBreakdown,
    ProjectDetail,
    ProjectListing,
    ProjectSyncResult,
    ProjectView,
)


def _view(repo_name: str = "e17-ml-vision") -> ProjectView:
    return ProjectView(
        repo_name=repo_name,
        name="e17-vision",
        title="Vision",
        organization="cepdnaclk",
        batch="e17",
        category_tag="ml",
        main_category="ml",
        categories=["ml"],
        repo_link=f"https://github.com/cepdnaclk/{repo_name}",
        private=False,
        has_pages=False,
        has_wiki=True,
        forks=1,
        watchers=2,
        stars=2,
        default_branch="main",
        repo_created=dt.date(2021, 3, 1),
        repo_updated=dt.datetime(2024, 5, 6, 7, 8, 9, tzinfo=dt.UTC),
    )


@pytest.fixture
def catalogue() -> mock.MagicMock:
    """Build a catalogue service double with canned answers."""
    service = mock.MagicMock()
    service.list_projects = mock.AsyncMock(
        return_value=ProjectListing(count=1, projects=[_view()])
    )
    service.get_project = mock.AsyncMock(
        return_value=ProjectDetail(
            project=_view(),
            contributors=ContributorList(
                count=1,
                contributors=[
                    ContributorInfo(
                        username="kasun",
                        avatar="https://avatars.example.test/kasun.png",
                        url="https://github.com/kasun",
                        contributions=12,
                    )
                ],
            ),
            languages=LanguageBreakdown(count=1, total=10, languages={"Python": 10}),
        )
    )
    service.list_categories = mock.AsyncMock(
        return_value=[
            CategoryDefinition(
                code="ml",
                title="Machine Learning",
                type="course",
                description=None,
                cover_image=None,
                thumb_image=None,
                contact=None,
                filters=(r"e\d{2}-ml-",),
            )
        ]
    )
    return service


@pytest.fixture
def orchestrator() -> mock.MagicMock:
    """Build a sync orchestrator double."""
    double = mock.MagicMock()
    double.sync_categories = mock.AsyncMock(
        return_value=CategorySyncResult(
            loaded=["ml"],
            skipped=[SkippedCategory(key="robotics", reason="invalid JSON")],
        )
    )
    double.sync_projects = mock.AsyncMock(
        return_value=ProjectSyncResult(
            organization="cepdnaclk", repositories_fetched=2, projects_written=1
        )
    )
    return double


@pytest.fixture
def health_client() -> falcon.testing.TestClient:
    """Build a test client for health-only mode."""
    return falcon.testing.TestClient(create_app())


@pytest.fixture
def full_client(
    catalogue: mock.MagicMock, orchestrator: mock.MagicMock
) -> falcon.testing.TestClient:
    """Build a test client with catalogue and sync dependencies."""
    deps = AppDependencies(catalogue=catalogue, orchestrator=orchestrator)
    return falcon.testing.TestClient(create_app(deps))


class TestCreateAppHealthOnly:
    """Tests for create_app() without domain dependencies."""

    def test_returns_falcon_app(self) -> None:
        """create_app() returns a Falcon ASGI App."""
        assert isinstance(create_app(), falcon.asgi.App), "expected Falcon ASGI App"

    def test_has_health_route(self, health_client: falcon.testing.TestClient) -> None:
        """Health-only app responds to /health."""
        result = health_client.simulate_get("/health")
        assert result.status == falcon.HTTP_200, "expected HTTP 200 from /health"
        assert result.json == {"status": "ok"}, "wrong /health body"

    def test_has_ready_route(self, health_client: falcon.testing.TestClient) -> None:
        """Health-only app is ready without a database."""
        result = health_client.simulate_get("/ready")
        assert result.status == falcon.HTTP_200, "expected HTTP 200 from /ready"
        assert result.json == {"status": "ready"}, "wrong /ready body"

    @pytest.mark.parametrize(
        ("method", "path"),
        [
            ("GET", "/projects"),
            ("GET", "/categories"),
            ("POST", "/sync/projects"),
        ],
    )
    def test_catalogue_routes_not_registered(
        self, health_client: falcon.testing.TestClient, method: str, path: str
    ) -> None:
        """Without deps, catalogue and sync routes return 404."""
        result = health_client.simulate_request(method, path)
        assert result.status == falcon.HTTP_404, f"expected 404 for {path}"


class TestReadiness:
    """Tests for the /ready database check."""

    def test_unreachable_database_is_unavailable(self) -> None:
        """A failing SELECT 1 takes the service out of rotation."""
        session = mock.MagicMock()
        session.__aenter__ = mock.AsyncMock(
            side_effect=OperationalError("SELECT 1", {}, Exception("down"))
        )
        session.__aexit__ = mock.AsyncMock(return_value=False)
        session_factory = mock.MagicMock(return_value=session)
        client = falcon.testing.TestClient(
            create_app(AppDependencies(session_factory=session_factory))
        )

        result = client.simulate_get("/ready")

        assert result.status == falcon.HTTP_503, "expected HTTP 503 from /ready"
        assert result.json == {"status": "unavailable"}


class TestCatalogueRoutes:
    """Tests for the read routes."""

    def test_lists_projects(
        self, full_client: falcon.testing.TestClient, catalogue: mock.MagicMock
    ) -> None:
        """GET /projects returns the listing as JSON."""
        result = full_client.simulate_get("/projects")

        assert result.status == falcon.HTTP_200
        assert result.json["count"] == 1
        [project] = result.json["projects"]
        assert project["repo_name"] == "e17-ml-vision"
        assert project["repo_created"] == "2021-03-01"
        catalogue.list_projects.assert_awaited_once_with(None)

    def test_category_query_is_forwarded(
        self, full_client: falcon.testing.TestClient, catalogue: mock.MagicMock
    ) -> None:
        """The category query parameter scopes the listing."""
        full_client.simulate_get("/projects", params={"category": "ml"})

        catalogue.list_projects.assert_awaited_once_with("ml")

    def test_project_detail(
        self, full_client: falcon.testing.TestClient, catalogue: mock.MagicMock
    ) -> None:
        """GET /projects/{repo_name} returns the enriched project."""
        result = full_client.simulate_get("/projects/e17-ml-vision")

        assert result.status == falcon.HTTP_200
        assert result.json["languages"] == {
            "count": 1,
            "total": 10,
            "list": {"Python": 10},
        }
        assert result.json["contributors"] == {
            "count": 1,
            "list": [
                {
                    "username": "kasun",
                    "avatar": "https://avatars.example.test/kasun.png",
                    "url": "https://github.com/kasun",
                    "contributions": 12,
                }
            ],
        }
        catalogue.get_project.assert_awaited_once_with("e17-ml-vision")

    def test_missing_project_is_404(
        self, full_client: falcon.testing.TestClient, catalogue: mock.MagicMock
    ) -> None:
        """ProjectNotFoundError maps to 404."""
        catalogue.get_project.side_effect = ProjectNotFoundError("docs-site")

        result = full_client.simulate_get("/projects/docs-site")

        assert result.status == falcon.HTTP_404
        assert result.json["title"] == "Project not found"

    def test_github_failure_is_502(
        self, full_client: falcon.testing.TestClient, catalogue: mock.MagicMock
    ) -> None:
        """A failed live lookup maps to 502 with the upstream status."""
        catalogue.get_project.side_effect = GitHubAPIError.http_error(
            503, "https://api.github.com/repos/cepdnaclk/e17-ml-vision/contributors"
        )

        result = full_client.simulate_get("/projects/e17-ml-vision")

        assert result.status == falcon.HTTP_502
        assert result.json["upstream_status"] == 503

    def test_lists_categories(self, full_client: falcon.testing.TestClient) -> None:
        """GET /categories returns committed categories."""
        result = full_client.simulate_get("/categories")

        assert result.status == falcon.HTTP_200
        assert result.json["count"] == 1
        assert result.json["categories"][0]["code"] == "ml"
        assert result.json["categories"][0]["filters"] == [r"e\d{2}-ml-"]


class TestSyncRoutes:
    """Tests for the sync triggers."""

    def test_category_sync_summary(
        self, full_client: falcon.testing.TestClient, orchestrator: mock.MagicMock
    ) -> None:
        """POST /sync/categories returns the phase summary."""
        result = full_client.simulate_post("/sync/categories")

        assert result.status == falcon.HTTP_200
        assert result.json == {
            "phase": "categories",
            "loaded": ["ml"],
            "skipped": [{"key": "robotics", "reason": "invalid JSON"}],
            "associations_kept": 0,
        }
        orchestrator.sync_categories.assert_awaited_once_with()

    def test_project_sync_summary(
        self, full_client: falcon.testing.TestClient
    ) -> None:
        """POST /sync/projects returns the phase summary."""
        result = full_client.simulate_post("/sync/projects")

        assert result.status == falcon.HTTP_200
        assert result.json["phase"] == "projects"
        assert result.json["projects_written"] == 1

    def test_concurrent_sync_is_409(
        self, full_client: falcon.testing.TestClient, orchestrator: mock.MagicMock
    ) -> None:
        """A trigger during a running sync is rejected."""
        orchestrator.sync_projects.side_effect = SyncInProgressError("projects")

        result = full_client.simulate_post("/sync/projects")

        assert result.status == falcon.HTTP_409
        assert result.json["phase"] == "projects"

    def test_upstream_failure_is_502(
        self, full_client: falcon.testing.TestClient, orchestrator: mock.MagicMock
    ) -> None:
        """An aborted fetch maps to 502 and names the source."""
        orchestrator.sync_projects.side_effect = FetchError(
            "cepdnaclk repositories (page 2)", "GitHub REST HTTP 502"
        )

        result = full_client.simulate_post("/sync/projects")

        assert result.status == falcon.HTTP_502
        assert result.json["source"] == "cepdnaclk repositories (page 2)"
