#!/usr/bin/env python3
"""
Local (L1) Cache - In-process TTL + LRU store

Responsibility: sub-millisecond lookups for hot keys inside one process.

STAGE-2.1: L1 in-memory cache

This is a per-process cache, not shared across workers and lost on restart.
For shared caching see RedisClient (L2).

Implementation Details:
- OrderedDict gives O(1) access and LRU ordering
- Every entry carries an absolute expiry; expired entries are dropped
  lazily on access and periodically by a background sweep task
- Capacity is a hard ceiling on the key count; inserting a new key into a
  full store evicts the least recently used entry
- All operations are synchronous: they never suspend the event loop, so no
  lock is needed under the single-threaded request model

Author: Platform Team
Date: 2026-10-18
"""

import asyncio
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import orjson

from src.core.config.constants import (
    L1_CACHE_MAX_SIZE,
    L1_CHECK_PERIOD,
    L1_DEFAULT_TTL,
    Stage,
)
from src.core.exceptions import CacheSerializationError
from src.core.logging.logger import get_logger, log_stage

logger = get_logger(__name__)


@dataclass
class _Entry:
    value: Any
    expires_at: float
    size: int


def estimate_size(key: str, value: Any) -> int:
    """
    Approximate the memory held by an entry, in bytes.

    Strings and bytes are measured directly; anything else is measured by
    its JSON encoding.

    Raises:
        CacheSerializationError: If the value is not JSON-serializable
    """
    if isinstance(value, bytes):
        value_size = len(value)
    elif isinstance(value, str):
        value_size = len(value.encode("utf-8"))
    else:
        try:
            value_size = len(orjson.dumps(value))
        except TypeError as e:
            # orjson.JSONEncodeError subclasses TypeError
            raise CacheSerializationError.from_exception(e, key=key) from e
    return len(key) + value_size


class LocalCache:
    """
    Capacity-bounded, TTL-aware in-process key/value store.

    Usage:
        cache = LocalCache(max_keys=5000)
        cache.set("product:42", {"name": "Tee"}, ttl=300)
        cache.get("product:42")
        cache.delete_matching("product:")

        # inside the running event loop
        cache.start_sweeper()
    """

    def __init__(
        self,
        max_keys: int = L1_CACHE_MAX_SIZE,
        default_ttl: int = L1_DEFAULT_TTL,
        check_period: float = L1_CHECK_PERIOD,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the local cache.

        Args:
            max_keys: Maximum number of entries kept at once
            default_ttl: TTL used when a caller passes none (or a non-positive one)
            check_period: Seconds between background expiry sweeps
            clock: Monotonic time source (injectable for tests)
        """
        if max_keys < 1:
            raise ValueError("max_keys must be at least 1")

        self._max_keys = max_keys
        self._default_ttl = default_ttl
        self._check_period = check_period
        self._clock = clock
        self._entries: OrderedDict[str, _Entry] = OrderedDict()
        self._memory_bytes = 0
        self._sweeper: asyncio.Task | None = None

        # Counters
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expired = 0

    # -------------------------------------------------------------------------
    # Core Operations
    # -------------------------------------------------------------------------

    def get(self, key: str) -> Any | None:
        """
        Get a live value, or None on miss.

        An entry found past its expiry is removed and counted as a miss.
        A hit moves the key to the most-recently-used end.
        """
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None

        if entry.expires_at <= self._clock():
            self._remove(key)
            self._expired += 1
            self._misses += 1
            return None

        self._entries.move_to_end(key)
        self._hits += 1
        return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> bool:
        """
        Store a value, replacing any previous one for the key.

        Eviction Policy:
        - When the store is full and the key is new, the least recently
          used entry is evicted first

        Args:
            key: Cache key
            value: Value to cache (JSON-serializable)
            ttl: Time-to-live in seconds (default: default_ttl)

        Returns:
            True if stored, False if the value could not be sized
        """
        if ttl is None or ttl <= 0:
            ttl = self._default_ttl

        try:
            size = estimate_size(key, value)
        except CacheSerializationError as e:
            log_stage(
                logger,
                Stage.CACHE_POPULATE,
                "L1 write skipped: value not serializable",
                level="warning",
                cache_key=key,
                error=e.details.get("original_message"),
            )
            return False

        if key in self._entries:
            self._remove(key)
        else:
            while len(self._entries) >= self._max_keys:
                evicted_key, _ = next(iter(self._entries.items()))
                self._remove(evicted_key)
                self._evictions += 1

        self._entries[key] = _Entry(value=value, expires_at=self._clock() + ttl, size=size)
        self._memory_bytes += size
        return True

    def delete(self, key: str) -> bool:
        """Delete one key. Returns True if it existed."""
        if key in self._entries:
            self._remove(key)
            return True
        return False

    def delete_matching(self, pattern: str) -> int:
        """
        Delete every key that contains `pattern` as a substring.

        Returns:
            Number of keys removed
        """
        matched = [key for key in self._entries if pattern in key]
        for key in matched:
            self._remove(key)
        return len(matched)

    def flush_all(self) -> None:
        """Remove every entry unconditionally."""
        self._entries.clear()
        self._memory_bytes = 0

    def prune_expired(self) -> int:
        """
        Remove all entries whose TTL has elapsed.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            self._remove(key)
        self._expired += len(expired)
        return len(expired)

    def _remove(self, key: str) -> None:
        entry = self._entries.pop(key)
        self._memory_bytes -= entry.size

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def ttl(self, key: str) -> float | None:
        """Remaining lifetime of a live key in seconds, or None if absent/expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        remaining = entry.expires_at - self._clock()
        return remaining if remaining > 0 else None

    def keys(self) -> list[str]:
        """All stored keys in LRU order (oldest first), expired ones included."""
        return list(self._entries.keys())

    @property
    def size(self) -> int:
        return len(self._entries)

    @property
    def max_keys(self) -> int:
        return self._max_keys

    def stats(self) -> dict[str, Any]:
        """
        Snapshot of internal counters.

        Returns:
            Dict with hits, misses, keys, memory estimate and hit rate
        """
        lookups = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "keys": len(self._entries),
            "max_keys": self._max_keys,
            "evictions": self._evictions,
            "expired": self._expired,
            "memory_bytes": self._memory_bytes,
            "hit_rate": round(self._hits / lookups, 3) if lookups else 0.0,
        }

    # -------------------------------------------------------------------------
    # Background Sweep
    # -------------------------------------------------------------------------

    def start_sweeper(self) -> None:
        """
        Start the periodic expiry sweep on the running event loop.

        STAGE-2.6: L1 expiry sweep

        Bounds memory held by stale entries even when nobody reads them.
        """
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper = asyncio.get_running_loop().create_task(self._sweep_loop())

    async def stop_sweeper(self) -> None:
        """Cancel the sweep task and wait for it to finish."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._check_period)
            removed = self.prune_expired()
            if removed:
                log_stage(
                    logger, Stage.L1_SWEEP, "Expired L1 entries swept", level="debug",
                    removed=removed, remaining=len(self._entries),
                )
