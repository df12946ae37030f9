"""
Unit Tests for API Routes

Tests the assembled application over HTTP (httpx + ASGITransport, lifespan
started by the `app` fixture): catalog CRUD, error mapping, response
caching headers, write-triggered invalidation and the operator routes.

Invalidations run in the background; tests that assert on post-write
freshness await `app.state.invalidation.drain()` first.
"""

import pytest

from src.core.config.constants import HEADER_CACHE_STATUS, HEADER_REQUEST_ID
from tests.test_fixtures import RequestFactory

BASE = "/api/v1"


async def create_category(client, name="T-Shirts"):
    response = await client.post(f"{BASE}/categories", json=RequestFactory.category(name))
    assert response.status_code == 201
    return response.json()


async def create_product(client, **kwargs):
    response = await client.post(f"{BASE}/products", json=RequestFactory.product(**kwargs))
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.unit
class TestProductRoutes:
    @pytest.mark.asyncio
    async def test_create_and_get_product(self, client):
        created = await create_product(client, name="Basic Tee", price=12.5)

        response = await client.get(f"{BASE}/products/{created['id']}")

        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Basic Tee"
        assert body["slug"] == "basic-tee"
        assert body["views"] == 0
        assert body["status"] == "active"

    @pytest.mark.asyncio
    async def test_list_filters_and_paginates(self, client):
        for i in range(5):
            await create_product(client, name=f"Tee {i}", price=10.0 + i)

        response = await client.get(f"{BASE}/products", params={"min_price": 12, "sort": "price", "limit": 2})

        body = response.json()
        assert [p["price"] for p in body["products"]] == [12.0, 13.0]
        assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}

    @pytest.mark.asyncio
    async def test_search(self, client):
        await create_product(client, name="Organic Hoodie")
        await create_product(client, name="Basic Tee")

        response = await client.get(f"{BASE}/products/search", params={"q": "HOODIE"})

        body = response.json()
        assert body["query"] == "HOODIE"
        assert [p["name"] for p in body["products"]] == ["Organic Hoodie"]

    @pytest.mark.asyncio
    async def test_toggle_status(self, client):
        created = await create_product(client)

        response = await client.patch(f"{BASE}/products/{created['id']}/status")

        assert response.json()["status"] == "inactive"

    @pytest.mark.asyncio
    async def test_record_view(self, client):
        created = await create_product(client)

        await client.post(f"{BASE}/products/{created['id']}/views")
        response = await client.post(f"{BASE}/products/{created['id']}/views")

        assert response.json() == {"id": created["id"], "views": 2}

    @pytest.mark.asyncio
    async def test_related_products_share_category(self, client):
        category = await create_category(client)
        tee = await create_product(client, name="Tee", category_id=category["id"])
        polo = await create_product(client, name="Polo", category_id=category["id"])
        await create_product(client, name="Mug")

        response = await client.get(f"{BASE}/products/{tee['id']}/related")

        assert [p["id"] for p in response.json()["products"]] == [polo["id"]]

    @pytest.mark.asyncio
    async def test_form_data(self, client):
        await create_category(client, "Hoodies")

        body = (await client.get(f"{BASE}/products/form-data")).json()

        assert [c["name"] for c in body["categories"]] == ["Hoodies"]
        assert body["statuses"] == ["active", "inactive", "draft"]

    @pytest.mark.asyncio
    async def test_delete_product(self, client):
        created = await create_product(client)

        assert (await client.delete(f"{BASE}/products/{created['id']}")).status_code == 204
        assert (await client.get(f"{BASE}/products/{created['id']}")).status_code == 404


@pytest.mark.unit
class TestErrorMapping:
    @pytest.mark.asyncio
    async def test_unknown_product_is_404(self, client):
        response = await client.get(f"{BASE}/products/nope", headers={HEADER_REQUEST_ID: "req-404"})

        assert response.status_code == 404
        body = response.json()
        assert body["error_type"] == "NotFoundError"
        assert body["request_id"] == "req-404"

    @pytest.mark.asyncio
    async def test_not_found_is_never_cached(self, client):
        await client.get(f"{BASE}/products/nope")
        response = await client.get(f"{BASE}/products/nope")

        assert response.status_code == 404
        assert HEADER_CACHE_STATUS not in response.headers

    @pytest.mark.asyncio
    async def test_unknown_category_reference_is_422(self, client):
        response = await client.post(f"{BASE}/products", json=RequestFactory.product(category_id="missing"))

        assert response.status_code == 422
        assert response.json()["error_type"] == "ValidationError"

    @pytest.mark.asyncio
    async def test_bad_sort_is_422(self, client):
        response = await client.get(f"{BASE}/products", params={"sort": "color"})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_duplicate_product_is_409(self, client):
        await create_product(client, name="Basic Tee")

        response = await client.post(f"{BASE}/products", json=RequestFactory.product(name="basic tee"))

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_deleting_used_category_is_409(self, client):
        category = await create_category(client)
        await create_product(client, category_id=category["id"])

        response = await client.delete(f"{BASE}/categories/{category['id']}")

        assert response.status_code == 409
        assert response.json()["details"]["products"] == 1


@pytest.mark.unit
class TestResponseCaching:
    @pytest.mark.asyncio
    async def test_listing_is_cached(self, client):
        first = await client.get(f"{BASE}/products")
        second = await client.get(f"{BASE}/products")

        assert first.headers[HEADER_CACHE_STATUS] == "MISS"
        assert second.headers[HEADER_CACHE_STATUS] == "HIT"
        assert second.content == first.content

    @pytest.mark.asyncio
    async def test_product_write_invalidates_listing(self, client, app):
        await client.get(f"{BASE}/products")

        created = await create_product(client, name="Fresh Tee")
        await app.state.invalidation.drain()
        response = await client.get(f"{BASE}/products")

        assert response.headers[HEADER_CACHE_STATUS] == "MISS"
        assert [p["id"] for p in response.json()["products"]] == [created["id"]]

    @pytest.mark.asyncio
    async def test_product_update_invalidates_detail(self, client, app):
        created = await create_product(client, name="Tee", price=10)
        await client.get(f"{BASE}/products/{created['id']}")

        await client.put(f"{BASE}/products/{created['id']}", json={"price": 8})
        await app.state.invalidation.drain()
        response = await client.get(f"{BASE}/products/{created['id']}")

        assert response.headers[HEADER_CACHE_STATUS] == "MISS"
        assert response.json()["price"] == 8

    @pytest.mark.asyncio
    async def test_category_write_invalidates_categories_and_form_data(self, client, app):
        await create_category(client, "Hoodies")
        await app.state.invalidation.drain()
        await client.get(f"{BASE}/categories")
        await client.get(f"{BASE}/products/form-data")

        await create_category(client, "Caps")
        await app.state.invalidation.drain()

        categories = await client.get(f"{BASE}/categories")
        form_data = await client.get(f"{BASE}/products/form-data")
        assert categories.headers[HEADER_CACHE_STATUS] == "MISS"
        assert [c["name"] for c in categories.json()["categories"]] == ["Caps", "Hoodies"]
        assert [c["name"] for c in form_data.json()["categories"]] == ["Caps", "Hoodies"]

    @pytest.mark.asyncio
    async def test_product_create_refreshes_related_products(self, client, app):
        category = await create_category(client)
        tee = await create_product(client, name="Tee", category_id=category["id"])
        await app.state.invalidation.drain()
        assert (await client.get(f"{BASE}/products/{tee['id']}/related")).json()["products"] == []

        polo = await create_product(client, name="Polo", category_id=category["id"])
        await app.state.invalidation.drain()
        response = await client.get(f"{BASE}/products/{tee['id']}/related")

        assert response.headers[HEADER_CACHE_STATUS] == "MISS"
        assert [p["id"] for p in response.json()["products"]] == [polo["id"]]

    @pytest.mark.asyncio
    async def test_record_view_keeps_detail_fresh(self, client, app):
        created = await create_product(client)
        await client.get(f"{BASE}/products/{created['id']}")

        await client.post(f"{BASE}/products/{created['id']}/views")
        await app.state.invalidation.drain()

        assert (await client.get(f"{BASE}/products/{created['id']}")).json()["views"] == 1


@pytest.mark.unit
class TestAdminRoutes:
    @pytest.mark.asyncio
    async def test_clear_all(self, client, app):
        await client.get(f"{BASE}/products")

        response = await client.delete("/api/cache/clear")

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert app.state.cache_manager.local.size == 0

    @pytest.mark.asyncio
    async def test_clear_by_pattern(self, client, app):
        await client.get(f"{BASE}/products")
        await client.get(f"{BASE}/brands")

        response = await client.delete("/api/cache/clear", params={"pattern": "/products"})

        body = response.json()
        assert body["pattern"] == "/products"
        assert body["removed"] == 1
        assert app.state.cache_manager.local.keys() == [f"cache:{BASE}/brands"]

    @pytest.mark.asyncio
    async def test_performance(self, client):
        response = await client.get("/api/performance")

        body = response.json()
        assert body["status"] == "OK"
        assert body["environment"] == "test"
        assert body["cache"]["redis"] == "disconnected"
        assert "keys" in body["cache"]["memory"]
        assert body["memory"]["rss"] > 0

    @pytest.mark.asyncio
    async def test_api_docs(self, client):
        body = (await client.get("/api/docs")).json()

        assert body["endpoints"]["products"]["list"] == f"GET {BASE}/products"


@pytest.mark.unit
class TestOperatorRoutes:
    @pytest.mark.asyncio
    async def test_health_without_redis_is_ok(self, client):
        response = await client.get("/health")

        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "OK"
        assert body["redis"] == "disconnected"
        assert body["version"] == "2.0.0"

    @pytest.mark.asyncio
    async def test_health_is_cached_locally(self, client, app):
        await client.get("/health")
        response = await client.get("/health")

        assert response.headers[HEADER_CACHE_STATUS] == "HIT"

    @pytest.mark.asyncio
    async def test_cache_health(self, client):
        body = (await client.get("/health/cache")).json()

        assert body["status"] == "healthy"
        assert body["l2"] == {"status": "disabled"}

    @pytest.mark.asyncio
    async def test_root(self, client):
        body = (await client.get("/")).json()

        assert body["name"] == "Shop API"
        assert body["docs"] == "/api/docs"

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, client):
        response = await client.get("/", headers={HEADER_REQUEST_ID: "abc-123"})

        assert response.headers[HEADER_REQUEST_ID] == "abc-123"

    @pytest.mark.asyncio
    async def test_request_id_is_generated(self, client):
        response = await client.get("/health")

        assert response.headers[HEADER_REQUEST_ID]
