"""Category feed loading and the category registry.

Categories are curated outside this service and published as a static JSON
feed. The registry reads the feed into memory, skipping and reporting any
category whose document is missing or invalid, then replaces the stored
categories in one transaction.

Usage
-----
Reload categories from the feed::

    from orgfolio.categories import CategoryFeedClient, CategoryRegistry

    feed = CategoryFeedClient(config.category_feed_url, http_client)
    registry = CategoryRegistry(feed, session_factory)
    reloaded = await registry.reload()
    await registry.commit(reloaded.categories)

"""

from __future__ import annotations

from .feed import CategoryFeed, CategoryFeedClient
from .models import (
    CategoryDefinition,
    CategoryDocument,
    CategoryImages,
    CategoryReload,
    CategorySyncResult,
    SkippedCategory,
)
from .registry import CategoryRegistry

__all__ = [
    "CategoryDefinition",
    "CategoryDocument",
    "CategoryFeed",
    "CategoryFeedClient",
    "CategoryImages",
    "CategoryRegistry",
    "CategoryReload",
    "CategorySyncResult",
    "SkippedCategory",
]
