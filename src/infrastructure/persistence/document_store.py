"""
In-Memory Document Store

Async, collection-based document storage standing in for the catalog
database. Documents are plain dicts with a string "id"; every read returns
a deep copy so callers (and the caches holding their results) never share
mutable state with the store.

Author: Platform Team
Date: 2026-10-18
"""

import copy
import uuid
from collections import defaultdict
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from src.core.logging.logger import get_logger

logger = get_logger(__name__)

Document = dict[str, Any]
Filter = Callable[[Document], bool]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class InMemoryDocumentStore:
    """
    Minimal document database.

    Usage:
        store = InMemoryDocumentStore()
        doc = await store.insert("products", {"name": "Tee", "price": 12.5})
        await store.update("products", doc["id"], {"price": 10.0})
        cheap = await store.find("products", lambda d: d["price"] < 20, sort_by="price")
    """

    def __init__(self):
        self._collections: dict[str, dict[str, Document]] = defaultdict(dict)

    async def insert(self, collection: str, document: Document) -> Document:
        """Insert a document; assigns "id" and timestamps. Returns the stored copy."""
        doc = copy.deepcopy(document)
        doc.setdefault("id", uuid.uuid4().hex)
        doc["created_at"] = doc["updated_at"] = _now()
        self._collections[collection][doc["id"]] = doc
        logger.debug("Document inserted", collection=collection, doc_id=doc["id"])
        return copy.deepcopy(doc)

    async def find(
        self,
        collection: str,
        filter_fn: Filter | None = None,
        sort_by: str | None = None,
        descending: bool = False,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[Document]:
        """
        Query a collection.

        Args:
            collection: Collection name
            filter_fn: Predicate selecting documents (default: all)
            sort_by: Field to sort on (default: insertion order)
            descending: Reverse the sort
            skip: Number of matching documents to skip
            limit: Maximum number of documents returned
        """
        docs = [doc for doc in self._collections[collection].values() if filter_fn is None or filter_fn(doc)]
        if sort_by:
            present = [doc for doc in docs if doc.get(sort_by) is not None]
            missing = [doc for doc in docs if doc.get(sort_by) is None]
            docs = sorted(present, key=lambda doc: doc[sort_by], reverse=descending) + missing

        end = None if limit is None else skip + limit
        return copy.deepcopy(docs[skip:end])

    async def find_one(self, collection: str, doc_id: str) -> Document | None:
        doc = self._collections[collection].get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def update(self, collection: str, doc_id: str, changes: Document) -> Document | None:
        """Apply a partial update. Returns the updated copy, or None if absent."""
        doc = self._collections[collection].get(doc_id)
        if doc is None:
            return None
        doc.update(copy.deepcopy({k: v for k, v in changes.items() if k not in ("id", "created_at")}))
        doc["updated_at"] = _now()
        return copy.deepcopy(doc)

    async def delete(self, collection: str, doc_id: str) -> bool:
        return self._collections[collection].pop(doc_id, None) is not None

    async def count(self, collection: str, filter_fn: Filter | None = None) -> int:
        return sum(1 for doc in self._collections[collection].values() if filter_fn is None or filter_fn(doc))
