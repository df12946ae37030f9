#!/usr/bin/env python3
"""
Cache Manager - Two-tier cache facade

Architecture:
    CacheManager (Public API)
        ├── LocalCache (L1, in-process)
        ├── RedisClient (L2, distributed, optional)
        └── CacheObserver (hit/miss counters + stage logging)

Tier Policy:
- Reads try L1 first, then L2. An L2 hit is copied into L1 with a short
  TTL (never longer than what L2 has left) so other instances' writes
  become visible locally within that window.
- Writes go to L1 (TTL capped) and L2 (full TTL). Tiers are independent:
  a failed L2 write does not undo the L1 write.
- Invalidation always runs on both tiers.

Author: Platform Team
Date: 2026-10-18
"""

import inspect
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from src.core.config.constants import CACHE_KEY_RESPONSE, CacheTier, Stage
from src.core.config.settings import CacheSettings, Settings, get_settings
from src.core.logging.logger import get_logger, log_stage
from src.infrastructure.cache.local_cache import LocalCache
from src.infrastructure.cache.redis_client import RedisClient

logger = get_logger(__name__)


# =============================================================================
# KEY HELPERS
# =============================================================================


def response_key(path: str, query: str | None = None) -> str:
    """
    Build the cache key for a full HTTP response.

    The raw query string is kept as sent, so `?a=1&b=2` and `?b=2&a=1`
    are different entries.

    Example:
        response_key("/api/v1/products", "page=2") -> "cache:/api/v1/products?page=2"
    """
    key = f"{CACHE_KEY_RESPONSE}:{path}"
    if query:
        key = f"{key}?{query}"
    return key


def build_key(prefix: str, *parts: Any) -> str:
    """
    Build an application-level cache key.

    Example:
        build_key("search", "shirt", 1, 20) -> "search:shirt:1:20"
    """
    return ":".join([prefix, *(str(part) for part in parts)])


# =============================================================================
# OBSERVABILITY
# =============================================================================


class CacheObserver:
    """
    Counts which tier served each read and logs cache operations.

    Metrics Tracked:
    - L1 hits, L2 hits, misses
    - Hit rates (overall, L1-specific)
    """

    def __init__(self, logger_instance=None):
        self._logger = logger_instance or logger
        self._hits_l1 = 0
        self._hits_l2 = 0
        self._misses = 0

    def record_read(self, source: CacheTier | None, key: str) -> None:
        if source == CacheTier.L1:
            self._hits_l1 += 1
            log_stage(self._logger, Stage.L1_LOOKUP, "L1 cache hit", level="debug", cache_key=key)
        elif source == CacheTier.L2:
            self._hits_l2 += 1
            log_stage(self._logger, Stage.L2_LOOKUP, "L2 cache hit", level="debug", cache_key=key)
        else:
            self._misses += 1
            log_stage(self._logger, Stage.L2_LOOKUP, "Cache miss", level="debug", cache_key=key)

    def record_invalidation(self, pattern: str, local_removed: int, distributed_removed: int) -> None:
        log_stage(
            self._logger,
            Stage.CACHE_INVALIDATE,
            "Cache invalidated",
            pattern=pattern,
            l1_removed=local_removed,
            l2_removed=distributed_removed,
        )

    def get_stats(self) -> dict[str, Any]:
        total = self._hits_l1 + self._hits_l2 + self._misses
        hit_rate = (self._hits_l1 + self._hits_l2) / total if total > 0 else 0.0

        return {
            "l1_hits": self._hits_l1,
            "l2_hits": self._hits_l2,
            "misses": self._misses,
            "total_requests": total,
            "hit_rate": round(hit_rate, 3),
            "l1_hit_rate": round(self._hits_l1 / total, 3) if total > 0 else 0.0,
        }


# =============================================================================
# PUBLIC API
# =============================================================================


class CacheManager:
    """
    Two-tier cache facade used by the response middleware and services.

    Usage:
        manager = build_cache_manager(get_settings())
        await manager.initialize()

        await manager.write("product:42", {"name": "Tee"}, ttl=600)
        value = await manager.read("product:42")
        await manager.invalidate("product:42")

        # Cache-aside
        product = await manager.get_or_compute("product:42", load_product, ttl=600)

    Values must be JSON-serializable; the distributed tier stores them
    encoded and returns them decoded.
    """

    def __init__(
        self,
        local: LocalCache,
        distributed: RedisClient | None = None,
        settings: CacheSettings | None = None,
    ):
        """
        Initialize cache manager.

        STAGE-2.0: Cache manager initialization

        Args:
            local: The in-process tier
            distributed: The Redis tier (None for local-only operation)
            settings: Cache settings view (default: from global settings)
        """
        settings = settings or get_settings().cache

        self._local = local
        self._distributed = distributed
        self._observer = CacheObserver()

        self._enabled = settings.ENABLE_CACHING
        self._max_local_ttl = settings.CACHE_L1_MAX_TTL
        self._backfill_ttl = settings.CACHE_L1_BACKFILL_TTL
        self._initialized = False

        logger.info(
            "Cache manager initialized",
            stage="2.0",
            l1_max_size=local.max_keys,
            distributed_configured=distributed is not None and distributed.enabled,
            caching_enabled=self._enabled,
        )

    @property
    def local(self) -> LocalCache:
        return self._local

    @property
    def distributed(self) -> RedisClient | None:
        return self._distributed

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def distributed_connected(self) -> bool:
        return self._distributed is not None and self._distributed.is_connected

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def initialize(self) -> None:
        """
        Connect the distributed tier and start the L1 expiry sweep.

        STAGE-2.0.1

        Never fails because Redis is down: the tier just starts out
        disconnected and reconnects in the background.
        """
        if self._initialized:
            return

        if self._distributed is not None:
            await self._distributed.connect()
        self._local.start_sweeper()
        self._initialized = True

        logger.info("Cache manager ready", stage="2.0.1", l2_connected=self.distributed_connected)

    async def shutdown(self) -> None:
        """
        Stop the sweep, drop local entries and disconnect Redis.

        STAGE-2.0.2

        Distributed entries are left alone: other instances still use them.
        """
        await self._local.stop_sweeper()
        self._local.flush_all()
        if self._distributed is not None:
            await self._distributed.disconnect()
        self._initialized = False

        log_stage(logger, Stage.SHUTDOWN, "Cache manager shutdown")

    # -------------------------------------------------------------------------
    # Core Cache Operations
    # -------------------------------------------------------------------------

    async def read(self, key: str, use_distributed: bool = True) -> Any | None:
        """
        Get a value with L1→L2 fallback.

        STAGE-2.1: L1 lookup
        STAGE-2.2: L2 lookup (if L1 miss)

        Args:
            key: Cache key
            use_distributed: Consult Redis on an L1 miss

        Returns:
            Cached value or None
        """
        if not self._enabled:
            return None

        value = self._local.get(key)
        if value is not None:
            self._observer.record_read(CacheTier.L1, key)
            return value

        if use_distributed and self._distributed is not None:
            found = await self._distributed.get_with_ttl(key)
            if found is not None:
                value, remaining = found
                backfill_ttl = self._backfill_ttl if remaining is None else min(self._backfill_ttl, remaining)
                self._local.set(key, value, backfill_ttl)
                self._observer.record_read(CacheTier.L2, key)
                return value

        self._observer.record_read(None, key)
        return None

    async def write(self, key: str, value: Any, ttl: int, use_distributed: bool = True) -> None:
        """
        Store a value in both tiers.

        STAGE-2.3: Cache population

        Args:
            key: Cache key
            value: JSON-serializable value
            ttl: Lifetime in seconds; the L1 copy is capped at CACHE_L1_MAX_TTL
            use_distributed: Also write to Redis
        """
        if not self._enabled:
            return

        self._local.set(key, value, min(ttl, self._max_local_ttl))
        if use_distributed and self._distributed is not None:
            await self._distributed.set(key, value, ttl)

        log_stage(
            logger, Stage.CACHE_POPULATE, "Cache set", level="debug",
            cache_key=key, ttl=ttl, distributed=use_distributed,
        )

    async def invalidate(self, pattern: str) -> int:
        """
        Remove every key containing `pattern` from both tiers.

        STAGE-2.4: Cache invalidation

        Runs even when caching is switched off so no stale entry can
        outlive a write.

        Returns:
            Total number of keys removed across tiers
        """
        local_removed = self._local.delete_matching(pattern)
        distributed_removed = 0
        if self._distributed is not None:
            distributed_removed = await self._distributed.delete_matching(pattern)

        self._observer.record_invalidation(pattern, local_removed, distributed_removed)
        return local_removed + distributed_removed

    async def flush_all(self) -> None:
        """
        Clear both tiers (administrative "clear all").

        STAGE-2.4
        """
        self._local.flush_all()
        if self._distributed is not None:
            await self._distributed.flush_all()
        log_stage(logger, Stage.CACHE_INVALIDATE, "All cache tiers flushed", level="warning")

    # -------------------------------------------------------------------------
    # Advanced Patterns
    # -------------------------------------------------------------------------

    async def get_or_compute(
        self,
        key: str,
        compute_fn: Callable[[], Any],
        ttl: int,
        use_distributed: bool = True,
    ) -> Any:
        """
        Get from cache or compute and cache the result (cache-aside pattern).

        STAGE-2.5: Cache-aside pattern

        A None result is returned but not cached.

        Args:
            key: Cache key
            compute_fn: Sync or async function producing the value
            ttl: Time-to-live in seconds
            use_distributed: Use the Redis tier as well

        Returns:
            Cached or computed value
        """
        cached = await self.read(key, use_distributed)
        if cached is not None:
            return cached

        value = compute_fn()
        if inspect.isawaitable(value):
            value = await value

        log_stage(logger, Stage.CACHE_ASIDE, "Computed on miss", level="debug", cache_key=key, cached=value is not None)
        if value is not None:
            await self.write(key, value, ttl, use_distributed)
        return value

    # -------------------------------------------------------------------------
    # Monitoring
    # -------------------------------------------------------------------------

    def stats(self) -> dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dict with local counters under "memory", the distributed
            connection as "connected"/"disconnected" under "redis", and the
            facade's per-tier read counters
        """
        return {
            "memory": self._local.stats(),
            "redis": "connected" if self.distributed_connected else "disconnected",
            "redis_state": self._distributed.state.value if self._distributed is not None else "disabled",
            **self._observer.get_stats(),
            "caching_enabled": self._enabled,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def health_check(self) -> dict[str, Any]:
        """
        Health of both tiers.

        The service stays healthy without Redis; an unreachable configured
        Redis only makes it "degraded".
        """
        health = {
            "status": "healthy",
            "caching_enabled": self._enabled,
            "l1": {
                "status": "healthy",
                "size": self._local.size,
                "max_size": self._local.max_keys,
            },
            "l2": {"status": "disabled"},
        }

        if self._distributed is not None:
            l2_health = await self._distributed.health_check()
            health["l2"] = l2_health
            if l2_health["status"] not in ("healthy", "disabled"):
                health["status"] = "degraded"

        return health


# =============================================================================
# FACTORY
# =============================================================================


def build_cache_manager(settings: Settings | None = None) -> CacheManager:
    """
    Wire both tiers from settings.

    The Redis tier is attached only when distributed caching is configured.
    """
    settings = settings or get_settings()
    cache_settings = settings.cache
    redis_settings = settings.redis

    local = LocalCache(
        max_keys=cache_settings.CACHE_L1_MAX_SIZE,
        default_ttl=cache_settings.CACHE_L1_DEFAULT_TTL,
        check_period=cache_settings.CACHE_L1_CHECK_PERIOD,
    )
    distributed = RedisClient(redis_settings) if redis_settings.distributed_enabled else None
    return CacheManager(local, distributed, cache_settings)
