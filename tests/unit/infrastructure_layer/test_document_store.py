"""
Unit Tests for InMemoryDocumentStore
"""

import pytest

from src.infrastructure.persistence import InMemoryDocumentStore


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.mark.unit
class TestDocumentStore:
    @pytest.mark.asyncio
    async def test_insert_assigns_id_and_timestamps(self, store):
        doc = await store.insert("products", {"name": "Tee"})

        assert doc["id"]
        assert doc["created_at"] == doc["updated_at"]
        assert await store.find_one("products", doc["id"]) == doc

    @pytest.mark.asyncio
    async def test_reads_return_copies(self, store):
        doc = await store.insert("products", {"name": "Tee", "tags": ["a"]})

        fetched = await store.find_one("products", doc["id"])
        fetched["tags"].append("b")

        assert (await store.find_one("products", doc["id"]))["tags"] == ["a"]

    @pytest.mark.asyncio
    async def test_find_filters_sorts_and_pages(self, store):
        for price in (30, 10, 20, 40):
            await store.insert("products", {"price": price, "active": price != 40})

        docs = await store.find(
            "products", lambda d: d["active"], sort_by="price", descending=True, skip=1, limit=1
        )

        assert [d["price"] for d in docs] == [20]

    @pytest.mark.asyncio
    async def test_documents_without_sort_field_come_last(self, store):
        await store.insert("products", {"name": "no price"})
        await store.insert("products", {"name": "cheap", "price": 1})

        docs = await store.find("products", sort_by="price", descending=True)

        assert [d["name"] for d in docs] == ["cheap", "no price"]

    @pytest.mark.asyncio
    async def test_update_keeps_identity_fields(self, store):
        doc = await store.insert("products", {"name": "Tee"})

        updated = await store.update("products", doc["id"], {"name": "Shirt", "id": "other", "created_at": "x"})

        assert updated["name"] == "Shirt"
        assert updated["id"] == doc["id"]
        assert updated["created_at"] == doc["created_at"]

    @pytest.mark.asyncio
    async def test_update_missing_returns_none(self, store):
        assert await store.update("products", "missing", {"name": "x"}) is None

    @pytest.mark.asyncio
    async def test_delete_and_count(self, store):
        a = await store.insert("brands", {"name": "A"})
        await store.insert("brands", {"name": "B"})

        assert await store.count("brands") == 2
        assert await store.delete("brands", a["id"]) is True
        assert await store.delete("brands", a["id"]) is False
        assert await store.count("brands", lambda d: d["name"] == "B") == 1

    @pytest.mark.asyncio
    async def test_collections_are_isolated(self, store):
        await store.insert("brands", {"name": "A"})

        assert await store.count("categories") == 0
