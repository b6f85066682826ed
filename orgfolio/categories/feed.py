"""HTTP client for the category feed.

The feed is a static site with a root manifest at
``{base}/data/categories/list.json`` enumerating category keys, and one
``{base}/data/categories/{key}/index.json`` document per key. Image file names
in a document are resolved relative to that document's directory.
"""

from __future__ import annotations

import typing as typ
import urllib.parse

import httpx
import msgspec

from orgfolio.errors import FeedDocumentError, FetchError

from .models import CategoryDefinition, CategoryDocument

_HTTP_OK = 200


class CategoryFeed(typ.Protocol):
    """Source of category keys and per-key category documents."""

    async def list_keys(self) -> list[str]:
        """Return the category keys enumerated by the manifest."""
        ...

    async def load_category(self, key: str) -> CategoryDefinition:
        """Return the category defined by ``key``'s detail document."""
        ...


class CategoryFeedClient:
    """Read categories from a static JSON feed over HTTP."""

    def __init__(self, base_url: str, http_client: httpx.AsyncClient) -> None:
        """Bind the client to the feed's base URL."""
        self._base_url = base_url.rstrip("/")
        self._client = http_client

    def _category_dir(self, key: str) -> str:
        return f"{self._base_url}/data/categories/{urllib.parse.quote(key, safe='')}"

    @property
    def manifest_url(self) -> str:
        """Return the URL of the root manifest."""
        return f"{self._base_url}/data/categories/list.json"

    def document_url(self, key: str) -> str:
        """Return the URL of the detail document for ``key``."""
        return f"{self._category_dir(key)}/index.json"

    def resolve_image(self, key: str, file_name: str | None) -> str | None:
        """Resolve an image file name from ``key``'s document to a URL."""
        if not file_name:
            return None
        if urllib.parse.urlsplit(file_name).scheme in {"http", "https"}:
            return file_name
        return f"{self._category_dir(key)}/{file_name.lstrip('/')}"

    async def list_keys(self) -> list[str]:
        """Fetch the manifest and return its keys in document order.

        Raises
        ------
        FetchError
            If the manifest is unreachable or is not a JSON object of strings.

        """
        url = self.manifest_url
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as exc:
            raise FetchError("category manifest", str(exc)) from exc
        if response.status_code != _HTTP_OK:
            raise FetchError("category manifest", f"HTTP {response.status_code}")
        try:
            manifest = msgspec.json.decode(response.content, type=dict[str, str])
        except (msgspec.ValidationError, msgspec.DecodeError) as exc:
            raise FetchError("category manifest", str(exc)) from exc
        return list(manifest)

    async def load_category(self, key: str) -> CategoryDefinition:
        """Fetch and validate the detail document for ``key``.

        Raises
        ------
        FeedDocumentError
            If the document is missing, unreachable or fails validation.

        """
        try:
            response = await self._client.get(self.document_url(key))
        except httpx.HTTPError as exc:
            raise FeedDocumentError(key, str(exc)) from exc
        if response.status_code != _HTTP_OK:
            raise FeedDocumentError(key, f"HTTP {response.status_code}")
        try:
            document = msgspec.json.decode(response.content, type=CategoryDocument)
        except (msgspec.ValidationError, msgspec.DecodeError) as exc:
            raise FeedDocumentError(key, str(exc)) from exc

        return CategoryDefinition(
            code=document.code,
            title=document.title,
            type=document.type,
            description=document.description,
            cover_image=self.resolve_image(key, document.images.cover),
            thumb_image=self.resolve_image(key, document.images.thumbnail),
            contact=document.contact,
            filters=tuple(document.filters),
        )


__all__ = ["CategoryFeed", "CategoryFeedClient"]
