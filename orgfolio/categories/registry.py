"""Category registry backed by the category feed and the catalogue store.

Reloading is split into two steps. :meth:`CategoryRegistry.reload` reads the
whole feed into memory without touching storage, and
:meth:`CategoryRegistry.commit` swaps the stored set in one transaction. A
reader therefore sees either the previous categories or the new ones, never
an empty table.
"""

from __future__ import annotations

import typing as typ

from sqlalchemy import delete, insert, select

from orgfolio.errors import FeedDocumentError
from orgfolio.logging import get_logger, log_info, log_warning
from orgfolio.projects.filters import invalid_patterns
from orgfolio.storage import CategoryRecord, project_categories

from .models import CategoryDefinition, CategoryReload, SkippedCategory

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from .feed import CategoryFeed

type SessionFactory = async_sessionmaker[AsyncSession]

logger = get_logger(__name__)


def to_category_definition(record: CategoryRecord) -> CategoryDefinition:
    """Convert a stored category row into a :class:`CategoryDefinition`."""
    return CategoryDefinition(
        code=record.category_code,
        title=record.title,
        type=record.type,
        description=record.description,
        cover_image=record.cover_image,
        thumb_image=record.thumb_image,
        contact=record.contact,
        filters=tuple(record.filters or ()),
    )


class CategoryRegistry:
    """Load categories from a feed and keep the stored set in step with it.

    Parameters
    ----------
    feed:
        Source of category keys and detail documents.
    session_factory:
        Async session factory for the catalogue database.

    """

    def __init__(self, feed: CategoryFeed, session_factory: SessionFactory) -> None:
        """Configure the registry with its feed and session factory."""
        self._feed = feed
        self._session_factory = session_factory

    async def reload(self) -> CategoryReload:
        """Read every category from the feed, isolating per-key failures.

        Raises
        ------
        FetchError
            If the manifest itself cannot be read.

        """
        keys = await self._feed.list_keys()
        categories: list[CategoryDefinition] = []
        skipped: list[SkippedCategory] = []
        seen_codes: set[str] = set()

        for key in keys:
            try:
                category = await self._feed.load_category(key)
            except FeedDocumentError as exc:
                log_warning(logger, "Skipping category: %s", exc)
                skipped.append(SkippedCategory(key=key, reason=exc.reason))
                continue

            if category.code in seen_codes:
                reason = f"duplicate category code {category.code!r}"
                log_warning(logger, "Skipping category %s: %s", key, reason)
                skipped.append(SkippedCategory(key=key, reason=reason))
                continue

            for error in invalid_patterns(category.filters):
                log_warning(
                    logger, "Category %s has an unusable filter: %s", category.code, error
                )

            seen_codes.add(category.code)
            categories.append(category)

        return CategoryReload(categories=tuple(categories), skipped=tuple(skipped))

    async def commit(self, categories: cabc.Sequence[CategoryDefinition]) -> int:
        """Replace the stored categories with ``categories`` atomically.

        Project links to categories whose code survives the reload are carried
        over to the new rows, so category listings keep working until the
        next project sync rebuilds the links.

        Returns
        -------
        int
            Number of project-category links carried over.

        """
        async with self._session_factory() as session, session.begin():
            previous_links = (
                await session.execute(
                    select(
                        project_categories.c.project_id,
                        CategoryRecord.category_code,
                    ).join(
                        CategoryRecord,
                        CategoryRecord.id == project_categories.c.category_id,
                    )
                )
            ).all()

            await session.execute(delete(project_categories))
            await session.execute(delete(CategoryRecord))

            records = [
                CategoryRecord(
                    category_code=category.code,
                    position=position,
                    title=category.title,
                    type=category.type,
                    description=category.description,
                    cover_image=category.cover_image,
                    thumb_image=category.thumb_image,
                    contact=category.contact,
                    filters=list(category.filters),
                )
                for position, category in enumerate(categories)
            ]
            session.add_all(records)
            await session.flush()

            ids_by_code = {record.category_code: record.id for record in records}
            carried = [
                {"project_id": project_id, "category_id": ids_by_code[code]}
                for project_id, code in previous_links
                if code in ids_by_code
            ]
            if carried:
                await session.execute(insert(project_categories), carried)

        log_info(
            logger,
            "Committed %d categories (%d project links carried over)",
            len(records),
            len(carried),
        )
        return len(carried)

    async def list_categories(self) -> list[CategoryDefinition]:
        """Return the committed categories in registry order."""
        async with self._session_factory() as session:
            records = await session.scalars(
                select(CategoryRecord).order_by(CategoryRecord.position)
            )
            return [to_category_definition(record) for record in records]


__all__ = ["CategoryRegistry", "to_category_definition"]
