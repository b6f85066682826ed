"""Catalogue read and sync-trigger resources."""

from __future__ import annotations

from .resources import (
    CategoriesResource,
    ProjectResource,
    ProjectsResource,
    SyncResource,
)

__all__ = [
    "CategoriesResource",
    "ProjectResource",
    "ProjectsResource",
    "SyncResource",
]
