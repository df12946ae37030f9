"""
Integration Tests: several instances sharing one distributed tier

Each "instance" is a CacheManager with its own LocalCache and clock, wired
to the same FakeRedis, the way app processes behind a load balancer share
one Redis.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from src.application.app import create_app
from src.core.config.constants import HEADER_CACHE_STATUS
from src.infrastructure.cache.local_cache import LocalCache
from tests.test_fixtures import CacheTestFactory, FakeClock, FakeRedis, RequestFactory


@pytest.fixture
def shared_redis():
    return FakeRedis()


@pytest.fixture
async def instances(shared_redis):
    managers = []
    clocks = []
    for _ in range(2):
        clock = FakeClock()
        client = CacheTestFactory.redis_client(shared_redis)
        manager = CacheTestFactory.cache_manager(local=LocalCache(max_keys=100, clock=clock), distributed=client)
        await manager.initialize()
        managers.append(manager)
        clocks.append(clock)

    yield managers, clocks

    for manager in managers:
        await manager.shutdown()


@pytest.mark.integration
class TestCrossInstanceVisibility:
    @pytest.mark.asyncio
    async def test_write_on_one_instance_is_read_on_another(self, instances):
        (a, b), _ = instances

        await a.write("product:1", {"name": "Tee"}, ttl=600)

        assert await b.read("product:1") == {"name": "Tee"}
        assert b.local.get("product:1") == {"name": "Tee"}
        assert b.stats()["l2_hits"] == 1

    @pytest.mark.asyncio
    async def test_invalidation_staleness_is_bounded_by_backfill_ttl(self, instances):
        (a, b), (_, clock_b) = instances
        await a.write("product:1", "old", ttl=600)
        await b.read("product:1")

        await a.invalidate("product:1")

        # B still holds its backfilled copy...
        assert await b.read("product:1") == "old"
        # ...but never longer than the backfill TTL
        clock_b.advance(60)
        assert await b.read("product:1") is None

    @pytest.mark.asyncio
    async def test_flush_on_one_instance_clears_shared_tier(self, instances, shared_redis):
        (a, b), _ = instances
        await b.write("search:tee:1:20", ["x"], ttl=180)

        await a.flush_all()

        assert shared_redis.data == {}
        # B's own local copy is untouched by A's flush
        assert b.local.get("search:tee:1:20") == ["x"]


@pytest.mark.integration
class TestApplicationWithDistributedTier:
    @pytest.fixture
    async def distributed_app(self, test_settings, shared_redis):
        manager = CacheTestFactory.cache_manager(
            local=LocalCache(max_keys=100),
            distributed=CacheTestFactory.redis_client(shared_redis),
        )
        application = create_app(test_settings, cache_manager=manager)
        async with application.router.lifespan_context(application):
            yield application

    @pytest.fixture
    async def http(self, distributed_app):
        async with AsyncClient(transport=ASGITransport(app=distributed_app), base_url="http://test") as client:
            yield client

    @pytest.mark.asyncio
    async def test_health_reports_connected(self, http):
        assert (await http.get("/health")).json()["redis"] == "connected"

    @pytest.mark.asyncio
    async def test_responses_are_stored_in_redis(self, http, distributed_app, shared_redis):
        await http.get("/api/v1/products")
        distributed_app.state.cache_manager.local.flush_all()

        response = await http.get("/api/v1/products")

        assert response.headers[HEADER_CACHE_STATUS] == "HIT"
        assert "cache:/api/v1/products" in shared_redis.data

    @pytest.mark.asyncio
    async def test_status_routes_stay_local(self, http, shared_redis):
        await http.get("/api/performance")

        assert "cache:/api/performance" not in shared_redis.data

    @pytest.mark.asyncio
    async def test_write_clears_both_tiers(self, http, distributed_app, shared_redis):
        await http.get("/api/v1/products")

        await http.post("/api/v1/products", json=RequestFactory.product())
        await distributed_app.state.invalidation.drain()

        assert "cache:/api/v1/products" not in shared_redis.data
        response = await http.get("/api/v1/products")
        assert response.headers[HEADER_CACHE_STATUS] == "MISS"
        assert len(response.json()["products"]) == 1
