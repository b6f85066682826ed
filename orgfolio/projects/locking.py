"""Database-backed run lock serialising sync phases across processes.

The CLI, the Dramatiq actors and the HTTP triggers each build their own
orchestrator, so the only state they share is the catalogue database. A
phase claims the single ``sync_locks`` row before it touches the catalogue
and deletes it when done; a claim that collides with a held row fails on the
primary key and is reported as :class:`SyncInProgressError`.

A holder that dies without releasing leaves its row behind. Rows past their
``expires_at`` are cleared before each claim so a crashed run cannot block
syncing forever.
"""

from __future__ import annotations

import datetime as dt
import typing as typ
import uuid

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError

from orgfolio.common.clock import Clock, utcnow
from orgfolio.errors import SyncInProgressError
from orgfolio.logging import get_logger, log_warning
from orgfolio.storage import SyncLockRecord

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from .observability import SyncPhase

logger = get_logger(__name__)

CATALOGUE_LOCK = "catalogue"
DEFAULT_LOCK_TTL_S = 3600.0


class SyncRunLock:
    """Claim and release the catalogue's sync lock row.

    Parameters
    ----------
    session_factory:
        Async session factory for the catalogue database.
    ttl_s:
        Seconds after which an unreleased claim is treated as abandoned.
    clock:
        Source of the current time, injectable for tests.

    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        ttl_s: float = DEFAULT_LOCK_TTL_S,
        clock: Clock = utcnow,
    ) -> None:
        """Bind the lock to a database and expiry window."""
        self._session_factory = session_factory
        self._ttl = dt.timedelta(seconds=ttl_s)
        self._clock = clock

    async def acquire(self, phase: SyncPhase) -> str:
        """Claim the lock for ``phase`` and return the holder token.

        Raises
        ------
        SyncInProgressError
            If another run holds an unexpired claim.

        """
        now = self._clock()
        await self._clear_expired(now)

        token = uuid.uuid4().hex
        async with self._session_factory() as session:
            session.add(
                SyncLockRecord(
                    name=CATALOGUE_LOCK,
                    holder=token,
                    phase=str(phase),
                    acquired_at=now,
                    expires_at=now + self._ttl,
                )
            )
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise SyncInProgressError(phase) from exc
        return token

    async def release(self, token: str) -> None:
        """Drop the claim held under ``token``; a claim taken over is left."""
        async with self._session_factory() as session, session.begin():
            await session.execute(
                delete(SyncLockRecord).where(
                    SyncLockRecord.name == CATALOGUE_LOCK,
                    SyncLockRecord.holder == token,
                )
            )

    async def _clear_expired(self, now: dt.datetime) -> None:
        async with self._session_factory() as session, session.begin():
            cleared = await session.execute(
                delete(SyncLockRecord).where(
                    SyncLockRecord.name == CATALOGUE_LOCK,
                    SyncLockRecord.expires_at < now,
                )
            )
        if cleared.rowcount:
            log_warning(logger, "Cleared an expired sync lock claim")


__all__ = ["CATALOGUE_LOCK", "DEFAULT_LOCK_TTL_S", "SyncRunLock"]
