"""
Unit Tests for LocalCache

Tests TTL expiry, capacity-bounded LRU eviction, substring deletes and the
background expiry sweep of the in-process tier.
"""

import asyncio

import pytest

from src.infrastructure.cache.local_cache import LocalCache, estimate_size
from tests.test_fixtures import FakeClock


@pytest.mark.unit
class TestLocalCacheBasics:
    """Get/set/delete behaviour."""

    def test_set_then_get_returns_value(self, local_cache):
        assert local_cache.set("product:1", {"name": "Tee"}, ttl=60) is True
        assert local_cache.get("product:1") == {"name": "Tee"}

    def test_get_missing_key_returns_none(self, local_cache):
        assert local_cache.get("nope") is None
        assert local_cache.stats()["misses"] == 1

    def test_set_overwrites_existing_value(self, local_cache):
        local_cache.set("k", "old", ttl=60)
        local_cache.set("k", "new", ttl=60)

        assert local_cache.get("k") == "new"
        assert local_cache.size == 1

    def test_delete(self, local_cache):
        local_cache.set("k", "v", ttl=60)

        assert local_cache.delete("k") is True
        assert local_cache.delete("k") is False
        assert local_cache.get("k") is None

    def test_unserializable_value_is_not_stored(self, local_cache):
        assert local_cache.set("k", object(), ttl=60) is False
        assert local_cache.size == 0

    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            LocalCache(max_keys=0)


@pytest.mark.unit
class TestLocalCacheExpiry:
    """Entries are never returned past their TTL."""

    def test_entry_expires_after_ttl(self, local_cache, fake_clock):
        local_cache.set("k", "v", ttl=10)

        fake_clock.advance(9.9)
        assert local_cache.get("k") == "v"

        fake_clock.advance(0.1)
        assert local_cache.get("k") is None
        assert local_cache.stats()["expired"] == 1

    def test_non_positive_ttl_uses_default(self, local_cache):
        local_cache.set("zero", "v", ttl=0)
        local_cache.set("none", "v")

        assert local_cache.ttl("zero") == pytest.approx(300)
        assert local_cache.ttl("none") == pytest.approx(300)

    def test_ttl_reports_remaining_seconds(self, local_cache, fake_clock):
        local_cache.set("k", "v", ttl=30)
        fake_clock.advance(10)

        assert local_cache.ttl("k") == pytest.approx(20)
        assert local_cache.ttl("missing") is None

    def test_prune_expired_removes_only_stale_entries(self, local_cache, fake_clock):
        local_cache.set("short", "v", ttl=5)
        local_cache.set("long", "v", ttl=50)
        fake_clock.advance(10)

        assert local_cache.prune_expired() == 1
        assert local_cache.keys() == ["long"]


@pytest.mark.unit
class TestLocalCacheCapacity:
    """Key count never exceeds max_keys; LRU entry is evicted first."""

    def test_evicts_least_recently_used(self, fake_clock):
        cache = LocalCache(max_keys=3, clock=fake_clock)
        for key in ("a", "b", "c"):
            cache.set(key, key, ttl=60)

        cache.get("a")  # "b" is now least recently used
        cache.set("d", "d", ttl=60)

        assert cache.size == 3
        assert cache.get("b") is None
        assert cache.get("a") == "a"
        assert cache.stats()["evictions"] == 1

    def test_overwrite_when_full_does_not_evict(self, fake_clock):
        cache = LocalCache(max_keys=2, clock=fake_clock)
        cache.set("a", 1, ttl=60)
        cache.set("b", 2, ttl=60)

        cache.set("a", 10, ttl=60)

        assert cache.size == 2
        assert cache.stats()["evictions"] == 0

    def test_size_never_exceeds_capacity(self, fake_clock):
        cache = LocalCache(max_keys=10, clock=fake_clock)
        for i in range(100):
            cache.set(f"k{i}", i, ttl=60)

        assert cache.size == 10
        assert cache.keys() == [f"k{i}" for i in range(90, 100)]


@pytest.mark.unit
class TestLocalCacheInvalidation:
    """Substring deletes and full flush."""

    def test_delete_matching_uses_substring(self, local_cache):
        local_cache.set("cache:/api/v1/products", "list", ttl=60)
        local_cache.set("cache:/api/v1/products?page=2", "page2", ttl=60)
        local_cache.set("cache:/api/v1/products/42", "detail", ttl=60)
        local_cache.set("cache:/api/v1/brands", "brands", ttl=60)

        removed = local_cache.delete_matching("cache:/api/v1/products")

        assert removed == 3
        assert local_cache.keys() == ["cache:/api/v1/brands"]

    def test_delete_matching_nothing(self, local_cache):
        local_cache.set("a", 1, ttl=60)
        assert local_cache.delete_matching("zzz") == 0
        assert local_cache.size == 1

    def test_flush_all_resets_memory_estimate(self, local_cache):
        local_cache.set("a", {"x": 1}, ttl=60)
        local_cache.set("b", "text", ttl=60)
        assert local_cache.stats()["memory_bytes"] > 0

        local_cache.flush_all()

        assert local_cache.size == 0
        assert local_cache.stats()["memory_bytes"] == 0


@pytest.mark.unit
class TestLocalCacheStats:
    def test_hit_rate(self, local_cache):
        local_cache.set("k", "v", ttl=60)
        local_cache.get("k")
        local_cache.get("k")
        local_cache.get("missing")

        stats = local_cache.stats()
        assert stats["hits"] == 2
        assert stats["misses"] == 1
        assert stats["hit_rate"] == pytest.approx(0.667, abs=0.001)
        assert stats["keys"] == 1
        assert stats["max_keys"] == 100

    def test_estimate_size_counts_key_and_encoded_value(self):
        assert estimate_size("ab", "xyz") == 5
        assert estimate_size("k", {"a": 1}) == 1 + len(b'{"a":1}')


@pytest.mark.unit
class TestLocalCacheSweeper:
    @pytest.mark.asyncio
    async def test_sweeper_removes_expired_entries(self):
        clock = FakeClock()
        cache = LocalCache(max_keys=10, check_period=0.01, clock=clock)
        cache.set("k", "v", ttl=5)
        clock.advance(6)

        cache.start_sweeper()
        await asyncio.sleep(0.05)
        await cache.stop_sweeper()

        assert cache.keys() == []

    @pytest.mark.asyncio
    async def test_stop_sweeper_without_start_is_noop(self, local_cache):
        await local_cache.stop_sweeper()
