"""Dramatiq actors for scheduled category and project syncs.

A scheduler enqueues these jobs, typically category sync followed by project
sync. Each job builds its own engine and HTTP client, so jobs can run in any
worker process.

Usage
-----
Queue a category sync and then a project sync:

>>> sync_categories_job.send(database_url="postgresql+asyncpg://...")
>>> sync_projects_job.send(database_url="postgresql+asyncpg://...")

"""

from __future__ import annotations

import asyncio
import dataclasses
import typing as typ

import dramatiq

from ._broker import ensure_broker_configured
from .observability import SyncPhase
from .sync import run_sync_phase

ensure_broker_configured()


@dramatiq.actor
def sync_categories_job(database_url: str) -> dict[str, typ.Any]:
    """Reload categories from the feed and commit them.

    Returns
    -------
    dict[str, Any]
        The :class:`CategorySyncResult` as a plain mapping.

    """
    result = asyncio.run(run_sync_phase(database_url, SyncPhase.CATEGORIES))
    return dataclasses.asdict(result)


@dramatiq.actor
def sync_projects_job(database_url: str) -> dict[str, typ.Any]:
    """Rebuild the project set from the committed categories.

    Returns
    -------
    dict[str, Any]
        The :class:`ProjectSyncResult` as a plain mapping.

    """
    result = asyncio.run(run_sync_phase(database_url, SyncPhase.PROJECTS))
    return dataclasses.asdict(result)


__all__ = ["sync_categories_job", "sync_projects_job"]
