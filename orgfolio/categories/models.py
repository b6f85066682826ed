"""Category feed documents and registry DTOs."""

from __future__ import annotations

import dataclasses

import msgspec


class CategoryImages(msgspec.Struct, frozen=True, kw_only=True):
    """Image file names relative to the category's feed directory."""

    cover: str | None = None
    thumbnail: str | None = None


class CategoryDocument(msgspec.Struct, frozen=True, kw_only=True):
    """Per-category ``index.json`` document published by the feed.

    Attributes
    ----------
    title : str
        Display title of the category.
    type : str
        Free-form classification, e.g. ``"course"`` or ``"research"``.
    code : str
        Unique category code used in URLs and associations.
    description : str, optional
        Narrative shown on the category page.
    images : CategoryImages
        Cover and thumbnail file names.
    filters : list[str]
        Ordered regular-expression fragments selecting repository names.
    contact : str, optional
        Contact address for the category owner.

    """

    title: str
    type: str
    code: str
    description: str | None = None
    images: CategoryImages = msgspec.field(default_factory=CategoryImages)
    filters: list[str] = msgspec.field(default_factory=list)
    contact: str | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class CategoryDefinition:
    """Category ready to be committed or read back from storage."""

    code: str
    title: str
    type: str
    description: str | None
    cover_image: str | None
    thumb_image: str | None
    contact: str | None
    filters: tuple[str, ...]


@dataclasses.dataclass(frozen=True, slots=True)
class SkippedCategory:
    """Feed entry that could not be loaded, with the reason."""

    key: str
    reason: str


@dataclasses.dataclass(frozen=True, slots=True)
class CategoryReload:
    """Outcome of reading the feed, before anything is committed."""

    categories: tuple[CategoryDefinition, ...]
    skipped: tuple[SkippedCategory, ...]


@dataclasses.dataclass(slots=True)
class CategorySyncResult:
    """Summary of a category-sync run."""

    loaded: list[str] = dataclasses.field(default_factory=list)
    skipped: list[SkippedCategory] = dataclasses.field(default_factory=list)
    associations_kept: int = 0
