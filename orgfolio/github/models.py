"""Typed records decoded from GitHub REST responses.

Provider payloads are decoded straight into these structs so that missing or
mistyped fields are rejected at the boundary rather than leaking loosely typed
mappings into the pipeline. Fields GitHub adds that orgfolio does not use are
ignored.
"""

from __future__ import annotations

import dataclasses
import datetime as dt  # noqa: TC003

import msgspec


class RawRepository(msgspec.Struct, frozen=True, kw_only=True):
    """Immutable snapshot of an organisation repository."""

    name: str
    private: bool
    has_pages: bool
    has_wiki: bool
    forks: int
    watchers: int
    stargazers_count: int
    created_at: dt.datetime
    updated_at: dt.datetime
    default_branch: str
    html_url: str
    description: str | None = None
    language: str | None = None


class Contributor(msgspec.Struct, frozen=True, kw_only=True):
    """Contributor entry returned by ``/repos/{owner}/{repo}/contributors``."""

    login: str
    avatar_url: str
    html_url: str
    contributions: int = 0


@dataclasses.dataclass(frozen=True, slots=True)
class RepositoryPage:
    """One page of organisation repositories and the cursor to the next."""

    repositories: tuple[RawRepository, ...]
    next_url: str | None
