"""Persistence models for the category and project catalogue.

Both tables are rebuilt wholesale by their sync phase inside a single
transaction, while a phase holds the row in ``sync_locks``. Models keep to
portable SQLAlchemy types so the same code works with SQLite in tests and
PostgreSQL in production.
"""

from __future__ import annotations

import datetime as dt
import typing as typ

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from orgfolio.common.clock import utcnow

if typ.TYPE_CHECKING:
    from sqlalchemy.engine import Dialect
    from sqlalchemy.ext.asyncio import AsyncEngine


class UTCDateTime(TypeDecorator[dt.datetime]):
    """Timezone-aware column that always reads back in UTC, SQLite included.

    Naive values are taken to be UTC already.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    @staticmethod
    def _as_utc(value: dt.datetime | None) -> dt.datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.UTC)
        return value.astimezone(dt.UTC)

    def process_bind_param(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Normalise values to UTC before they are written."""
        return self._as_utc(value)

    def process_result_value(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Attach UTC to values the backend returned naive."""
        return self._as_utc(value)


class Base(DeclarativeBase):
    """Base declarative class for catalogue persistence."""

    metadata: typ.Any


project_categories = Table(
    "project_categories",
    Base.metadata,
    Column(
        "project_id",
        ForeignKey("projects.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "category_id",
        ForeignKey("categories.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class CategoryRecord(Base):
    """Administrator-defined category loaded from the category feed."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    category_code: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    position: Mapped[int] = mapped_column(Integer, default=0)
    title: Mapped[str] = mapped_column(String(255))
    type: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text(), default=None)
    cover_image: Mapped[str | None] = mapped_column(String(1024), default=None)
    thumb_image: Mapped[str | None] = mapped_column(String(1024), default=None)
    contact: Mapped[str | None] = mapped_column(String(320), default=None)
    filters: Mapped[list[str]] = mapped_column(JSON, default=list)
    created_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)

    projects: Mapped[list[ProjectRecord]] = relationship(
        secondary=project_categories, back_populates="categories"
    )


class ProjectRecord(Base):
    """Repository that satisfied at least one category filter."""

    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    repo_name: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255))
    title: Mapped[str] = mapped_column(String(255))
    organization: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text(), default=None)
    batch: Mapped[str] = mapped_column(String(16), index=True)
    category_tag: Mapped[str] = mapped_column(String(255))
    main_category: Mapped[str] = mapped_column(String(255))
    repo_link: Mapped[str] = mapped_column(String(1024))
    page_link: Mapped[str | None] = mapped_column(String(1024), default=None)
    cover_img_link: Mapped[str | None] = mapped_column(String(1024), default=None)
    image: Mapped[str | None] = mapped_column(String(1024), default=None)
    thumbnail: Mapped[str | None] = mapped_column(String(1024), default=None)
    private: Mapped[bool] = mapped_column(Boolean, default=False)
    has_pages: Mapped[bool] = mapped_column(Boolean, default=False)
    has_wiki: Mapped[bool] = mapped_column(Boolean, default=False)
    language: Mapped[str | None] = mapped_column(String(255), default=None)
    forks: Mapped[int] = mapped_column(Integer, default=0)
    watchers: Mapped[int] = mapped_column(Integer, default=0)
    stars: Mapped[int] = mapped_column(Integer, default=0)
    default_branch: Mapped[str] = mapped_column(String(255))
    repo_created: Mapped[dt.date] = mapped_column(Date())
    repo_updated: Mapped[dt.datetime] = mapped_column(UTCDateTime())

    categories: Mapped[list[CategoryRecord]] = relationship(
        secondary=project_categories,
        back_populates="projects",
        order_by=CategoryRecord.position,
    )


class SyncLockRecord(Base):
    """Run lock shared by every process that syncs the catalogue.

    At most one row exists per lock name; the primary key makes a second
    claim fail while the first is held.
    """

    __tablename__ = "sync_locks"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    holder: Mapped[str] = mapped_column(String(64))
    phase: Mapped[str] = mapped_column(String(32))
    acquired_at: Mapped[dt.datetime] = mapped_column(UTCDateTime())
    expires_at: Mapped[dt.datetime] = mapped_column(UTCDateTime())


async def init_catalogue_storage(engine: AsyncEngine) -> None:
    """Create catalogue tables if they do not already exist.

    Examples
    --------
    >>> from sqlalchemy.ext.asyncio import create_async_engine
    >>> engine = create_async_engine("sqlite+aiosqlite:///orgfolio.db")
    >>> await init_catalogue_storage(engine)

    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


__all__ = [
    "Base",
    "CategoryRecord",
    "ProjectRecord",
    "SyncLockRecord",
    "init_catalogue_storage",
    "project_categories",
]
