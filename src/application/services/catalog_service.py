"""
Catalog Service (categories and brands)
=======================================

Categories and brands share one shape: a named, slugged document that
products reference by id. One service class handles both; each instance is
bound to a collection and to the invalidation patterns its writes fire.

Author: Platform Team
Date: 2026-10-18
"""

import re
from collections.abc import Callable
from typing import Any

from src.application.services.invalidation import InvalidationDispatcher
from src.core.exceptions import ConflictError, NotFoundError
from src.core.logging.logger import get_logger
from src.infrastructure.persistence import InMemoryDocumentStore

logger = get_logger(__name__)

PRODUCTS_COLLECTION = "products"


def slugify(name: str) -> str:
    """'Summer Tees & Tops' -> 'summer-tees-tops'"""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


class CatalogService:
    """
    CRUD for a reference collection (categories or brands).

    Every successful write dispatches the invalidations returned by
    `invalidation_patterns()`; reads are not cached here because the
    response cache already covers the routes that expose them.
    """

    def __init__(
        self,
        store: InMemoryDocumentStore,
        invalidation: InvalidationDispatcher,
        collection: str,
        reference_field: str,
        invalidation_patterns: Callable[[], tuple[str, ...]],
    ):
        """
        Args:
            store: Document store
            invalidation: Background invalidation dispatcher
            collection: "categories" or "brands"
            reference_field: Product field pointing at this collection
            invalidation_patterns: Patterns made stale by any write
        """
        self._store = store
        self._invalidation = invalidation
        self._collection = collection
        self._reference_field = reference_field
        self._patterns = invalidation_patterns

    @property
    def collection(self) -> str:
        return self._collection

    async def list_all(self) -> list[dict[str, Any]]:
        return await self._store.find(self._collection, sort_by="name")

    async def get(self, doc_id: str) -> dict[str, Any]:
        doc = await self._store.find_one(self._collection, doc_id)
        if doc is None:
            raise NotFoundError(f"{self._singular} not found", details={"id": doc_id})
        return doc

    async def exists(self, doc_id: str) -> bool:
        return await self._store.find_one(self._collection, doc_id) is not None

    async def create(self, data: dict[str, Any]) -> dict[str, Any]:
        slug = slugify(data["name"])
        await self._ensure_unique_slug(slug)

        doc = await self._store.insert(self._collection, {**data, "slug": slug})
        logger.info(f"{self._singular} created", doc_id=doc["id"], slug=slug)
        self._invalidation.dispatch(*self._patterns())
        return doc

    async def update(self, doc_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        await self.get(doc_id)

        if "name" in changes:
            changes = {**changes, "slug": slugify(changes["name"])}
            await self._ensure_unique_slug(changes["slug"], exclude_id=doc_id)

        doc = await self._store.update(self._collection, doc_id, changes)
        logger.info(f"{self._singular} updated", doc_id=doc_id, fields=sorted(changes))
        self._invalidation.dispatch(*self._patterns())
        return doc

    async def delete(self, doc_id: str) -> None:
        """
        Delete a document that no product references.

        Raises:
            NotFoundError: Unknown id
            ConflictError: Still referenced by at least one product
        """
        await self.get(doc_id)

        in_use = await self._store.count(
            PRODUCTS_COLLECTION, lambda product: product.get(self._reference_field) == doc_id
        )
        if in_use:
            raise ConflictError(
                f"{self._singular} is still used by products",
                details={"id": doc_id, "products": in_use},
            )

        await self._store.delete(self._collection, doc_id)
        logger.info(f"{self._singular} deleted", doc_id=doc_id)
        self._invalidation.dispatch(*self._patterns())

    async def _ensure_unique_slug(self, slug: str, exclude_id: str | None = None) -> None:
        clash = await self._store.count(
            self._collection, lambda doc: doc["slug"] == slug and doc["id"] != exclude_id
        )
        if clash:
            raise ConflictError(f"{self._singular} already exists", details={"slug": slug})

    @property
    def _singular(self) -> str:
        return {"categories": "Category", "brands": "Brand"}.get(self._collection, self._collection)
