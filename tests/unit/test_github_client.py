"""Unit tests for the GitHub REST client."""

from __future__ import annotations

import datetime as dt
import secrets
import typing as typ

import httpx
import pytest

from orgfolio.github import GitHubRestClient, GitHubRestConfig
from orgfolio.github.errors import (
    GitHubAPIError,
    GitHubConfigError,
    GitHubResponseShapeError,
)
from tests.helpers.upstream import ORG, repo_payload

_TOKEN = secrets.token_hex(8)
_API_URL = "https://api.example.test"


def _make_client(
    responses: list[httpx.Response],
    *,
    token: str | None = _TOKEN,
) -> tuple[GitHubRestClient, httpx.AsyncClient, list[httpx.Request]]:
    calls: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return responses[len(calls) - 1]

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(_handler))
    client = GitHubRestClient(
        GitHubRestConfig(token=token, api_url=_API_URL, page_size=50),
        http_client=http_client,
    )
    return client, http_client, calls


class TestFetchRepositoryPage:
    """Tests for paginated organisation listing."""

    @pytest.mark.asyncio
    async def test_first_page_requests_all_repositories(self) -> None:
        """The first request lists every repository type with the page size."""
        client, http_client, calls = _make_client(
            [httpx.Response(200, json=[repo_payload("e17-ml-vision")])]
        )

        page = await client.fetch_repository_page(ORG)
        await http_client.aclose()

        request = calls[0]
        assert request.url.path == f"/orgs/{ORG}/repos"
        assert request.url.params["type"] == "all"
        assert request.url.params["per_page"] == "50"
        assert request.headers["Authorization"] == f"Bearer {_TOKEN}"
        assert request.headers["Accept"] == "application/vnd.github+json"
        assert page.next_url is None
        [repo] = page.repositories
        assert repo.name == "e17-ml-vision"
        assert repo.created_at == dt.datetime(2021, 3, 1, 10, 0, tzinfo=dt.UTC)

    @pytest.mark.asyncio
    async def test_follows_link_header(self) -> None:
        """The next cursor comes from the Link header and is used verbatim."""
        next_url = f"{_API_URL}/organizations/42/repos?page=2"
        client, http_client, calls = _make_client(
            [
                httpx.Response(
                    200, json=[], headers={"Link": f'<{next_url}>; rel="next"'}
                ),
                httpx.Response(200, json=[]),
            ]
        )

        first = await client.fetch_repository_page(ORG)
        second = await client.fetch_repository_page(ORG, page_url=first.next_url)
        await http_client.aclose()

        assert first.next_url == next_url
        assert str(calls[1].url) == next_url
        assert second.next_url is None

    @pytest.mark.asyncio
    async def test_error_status_raises_api_error(self) -> None:
        """Non-2xx responses raise GitHubAPIError with the status code."""
        client, http_client, _ = _make_client([httpx.Response(502)])

        with pytest.raises(GitHubAPIError) as excinfo:
            await client.fetch_repository_page(ORG)
        await http_client.aclose()

        assert excinfo.value.status_code == 502
        assert excinfo.value.is_transient

    @pytest.mark.asyncio
    async def test_exhausted_rate_limit_is_flagged(self) -> None:
        """403 with no remaining quota is reported as rate limiting."""
        client, http_client, _ = _make_client(
            [httpx.Response(403, headers={"x-ratelimit-remaining": "0"})]
        )

        with pytest.raises(GitHubAPIError) as excinfo:
            await client.fetch_repository_page(ORG)
        await http_client.aclose()

        assert excinfo.value.rate_limited
        assert excinfo.value.is_transient

    @pytest.mark.asyncio
    async def test_missing_required_field_is_a_shape_error(self) -> None:
        """Records without required fields are rejected at the boundary."""
        payload = repo_payload("e17-ml-vision")
        del payload["html_url"]
        client, http_client, _ = _make_client([httpx.Response(200, json=[payload])])

        with pytest.raises(GitHubResponseShapeError, match="html_url"):
            await client.fetch_repository_page(ORG)
        await http_client.aclose()


class TestInsights:
    """Tests for contributor and language lookups."""

    @pytest.mark.asyncio
    async def test_list_contributors(self) -> None:
        """Contributors decode into typed records."""
        client, http_client, calls = _make_client(
            [
                httpx.Response(
                    200,
                    json=[
                        {
                            "login": "nuwanj",
                            "avatar_url": "https://avatars.test/u/1",
                            "html_url": "https://github.com/nuwanj",
                            "contributions": 12,
                        }
                    ],
                )
            ]
        )

        contributors = await client.list_contributors(ORG, "e17-ml-vision")
        await http_client.aclose()

        assert calls[0].url.path == f"/repos/{ORG}/e17-ml-vision/contributors"
        assert [c.login for c in contributors] == ["nuwanj"]
        assert contributors[0].contributions == 12

    @pytest.mark.asyncio
    async def test_empty_contributor_body_is_empty_list(self) -> None:
        """GitHub's 204 for empty repositories yields no contributors."""
        client, http_client, _ = _make_client([httpx.Response(204)])

        contributors = await client.list_contributors(ORG, "e17-ml-empty")
        await http_client.aclose()

        assert contributors == []

    @pytest.mark.asyncio
    async def test_get_languages(self) -> None:
        """Language byte counts decode into a mapping."""
        client, http_client, calls = _make_client(
            [httpx.Response(200, json={"Python": 1200, "HTML": 300})]
        )

        languages = await client.get_languages(ORG, "e17-ml-vision")
        await http_client.aclose()

        assert calls[0].url.path == f"/repos/{ORG}/e17-ml-vision/languages"
        assert languages == {"Python": 1200, "HTML": 300}


class TestConfig:
    """Tests for GitHubRestConfig and client construction."""

    def test_blank_explicit_token_is_rejected(self) -> None:
        """An explicitly blank token is a configuration error."""
        with pytest.raises(GitHubConfigError):
            GitHubRestClient(GitHubRestConfig(token="   "))

    @pytest.mark.asyncio
    async def test_anonymous_client_sends_no_authorization(self) -> None:
        """Public organisations can be listed without a token."""
        client, http_client, calls = _make_client(
            [httpx.Response(200, json=[])], token=None
        )

        await client.fetch_repository_page(ORG)
        await http_client.aclose()

        assert "Authorization" not in calls[0].headers

    @pytest.mark.parametrize(
        ("raw", "expected"), [("", None), ("  ", None), (" abc ", "abc")]
    )
    def test_from_env_reads_optional_token(
        self,
        monkeypatch: pytest.MonkeyPatch,
        raw: str,
        expected: str | None,
    ) -> None:
        """ORGFOLIO_GITHUB_TOKEN is optional and trimmed."""
        monkeypatch.setenv("ORGFOLIO_GITHUB_TOKEN", raw)

        assert GitHubRestConfig.from_env().token == expected


def test_error_transience() -> None:
    """Only server errors, 429 and rate limiting are retryable."""
    cases: list[tuple[dict[str, typ.Any], bool]] = [
        ({"status_code": 500}, True),
        ({"status_code": 429}, True),
        ({"status_code": 403, "rate_limited": True}, True),
        ({"status_code": 404}, False),
        ({}, False),
    ]
    for kwargs, expected in cases:
        assert GitHubAPIError("boom", **kwargs).is_transient is expected, kwargs
