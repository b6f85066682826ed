"""Unit tests for the database-backed sync run lock."""

from __future__ import annotations

import datetime as dt
import typing as typ

import pytest
from sqlalchemy import select

from orgfolio.errors import SyncInProgressError
from orgfolio.projects.locking import CATALOGUE_LOCK, SyncRunLock
from orgfolio.projects.observability import SyncPhase
from orgfolio.storage import SyncLockRecord

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    type SessionFactory = async_sessionmaker[AsyncSession]

_NOW = dt.datetime(2024, 7, 1, 12, 0, tzinfo=dt.UTC)


def _clock_at(moment: dt.datetime) -> cabc.Callable[[], dt.datetime]:
    return lambda: moment


async def _claims(session_factory: SessionFactory) -> list[SyncLockRecord]:
    async with session_factory() as session:
        return list((await session.scalars(select(SyncLockRecord))).all())


@pytest.mark.asyncio
async def test_claim_records_holder_and_expiry(
    session_factory: SessionFactory,
) -> None:
    """A claim stores the phase, its holder token and when it lapses."""
    lock = SyncRunLock(session_factory, ttl_s=60, clock=_clock_at(_NOW))

    token = await lock.acquire(SyncPhase.PROJECTS)

    [claim] = await _claims(session_factory)
    assert claim.name == CATALOGUE_LOCK
    assert claim.holder == token
    assert claim.phase == "projects"
    assert claim.acquired_at == _NOW
    assert claim.expires_at == _NOW + dt.timedelta(seconds=60)


@pytest.mark.asyncio
async def test_second_claim_is_rejected_until_release(
    session_factory: SessionFactory,
) -> None:
    """Only one holder at a time; releasing frees the lock for the next."""
    first = SyncRunLock(session_factory)
    second = SyncRunLock(session_factory)

    token = await first.acquire(SyncPhase.PROJECTS)
    with pytest.raises(SyncInProgressError) as excinfo:
        await second.acquire(SyncPhase.CATEGORIES)
    assert excinfo.value.phase == SyncPhase.CATEGORIES

    await first.release(token)
    await second.acquire(SyncPhase.CATEGORIES)

    [claim] = await _claims(session_factory)
    assert claim.phase == "categories"


@pytest.mark.asyncio
async def test_release_with_stale_token_keeps_current_claim(
    session_factory: SessionFactory,
) -> None:
    """A holder whose claim was taken over cannot drop the new one."""
    lock = SyncRunLock(session_factory)
    token = await lock.acquire(SyncPhase.PROJECTS)

    await lock.release("not-" + token)

    [claim] = await _claims(session_factory)
    assert claim.holder == token


@pytest.mark.asyncio
async def test_expired_claim_is_taken_over(session_factory: SessionFactory) -> None:
    """A claim left behind by a crashed run stops blocking once it lapses."""
    crashed = SyncRunLock(session_factory, ttl_s=60, clock=_clock_at(_NOW))
    await crashed.acquire(SyncPhase.PROJECTS)

    too_soon = SyncRunLock(
        session_factory, clock=_clock_at(_NOW + dt.timedelta(seconds=30))
    )
    with pytest.raises(SyncInProgressError):
        await too_soon.acquire(SyncPhase.PROJECTS)

    later = SyncRunLock(
        session_factory, clock=_clock_at(_NOW + dt.timedelta(minutes=5))
    )
    token = await later.acquire(SyncPhase.PROJECTS)

    [claim] = await _claims(session_factory)
    assert claim.holder == token
