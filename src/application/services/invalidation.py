"""
Cache Invalidation Service
==========================

Fires cache invalidations after catalog writes without making the write
wait for them.

FIRE-AND-FORGET, BUT TRACKED:
-----------------------------
A write handler calls `dispatch(...)` after its store write has completed
and returns immediately. The invalidations run as background tasks on the
event loop. Tasks are kept in a set until they finish so they cannot be
garbage-collected mid-flight, and `drain()` lets shutdown (and tests) wait
for everything still pending.

Failures are logged per pattern and never reach the caller: a failed
invalidation leaves stale data only until the entry's TTL runs out.

Author: Platform Team
Date: 2026-10-18
"""

import asyncio
from collections.abc import Callable, Sequence

from src.core.config.constants import (
    CACHE_KEY_POPULAR_PRODUCTS,
    CACHE_KEY_PRODUCT,
    CACHE_KEY_PRODUCT_FORM_DATA,
    CACHE_KEY_RELATED_PRODUCTS,
    CACHE_KEY_SEARCH,
    Stage,
)
from src.core.logging.logger import get_logger, log_stage
from src.infrastructure.cache.cache_manager import CacheManager, build_key, response_key

logger = get_logger(__name__)

CompletionHook = Callable[[Sequence[str], int], None]


class InvalidationDispatcher:
    """
    Runs cache invalidations in the background.

    Usage:
        dispatcher = InvalidationDispatcher(cache_manager)
        dispatcher.dispatch("cache:/api/v1/products", "product_form_data")

        await dispatcher.drain()  # wait for pending invalidations
    """

    def __init__(self, cache_manager: CacheManager, on_complete: CompletionHook | None = None):
        """
        Args:
            cache_manager: Facade whose invalidate() is called per pattern
            on_complete: Called with (patterns, removed_count) after each dispatch
        """
        self._cache = cache_manager
        self._on_complete = on_complete
        self._pending: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def dispatch(self, *patterns: str) -> asyncio.Task:
        """
        Schedule invalidation of every pattern and return without waiting.

        STAGE-2.4: Cache invalidation

        Must be called from inside the running event loop.
        """
        task = asyncio.get_running_loop().create_task(self._run(patterns))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _run(self, patterns: Sequence[str]) -> int:
        removed = 0
        for pattern in patterns:
            try:
                removed += await self._cache.invalidate(pattern)
            except Exception as e:
                # Invalidation runs detached from any request; nothing above to propagate to
                log_stage(
                    logger,
                    Stage.CACHE_INVALIDATE,
                    "Cache invalidation failed",
                    level="error",
                    pattern=pattern,
                    error=str(e),
                    error_type=type(e).__name__,
                )

        if self._on_complete is not None:
            self._on_complete(patterns, removed)
        return removed

    async def drain(self) -> None:
        """Wait until no invalidation is pending."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


# ============================================================================
# INVALIDATION PATTERNS PER CATALOG WRITE
# ============================================================================


class CatalogInvalidation:
    """
    Which cache entries each kind of catalog write makes stale.

    Response-cache patterns are path prefixes (`cache:/api/v1/products`
    covers the listing, every query-string variant and every detail page).
    Application-cache patterns are key prefixes.

    The form-data response lists categories and brands but is cached under
    the products path, so category and brand writes clear it explicitly.
    """

    def __init__(self, base_path: str):
        self.products = response_key(f"{base_path}/products")
        self.categories = response_key(f"{base_path}/categories")
        self.brands = response_key(f"{base_path}/brands")
        self.form_data = response_key(f"{base_path}/products/form-data")

    def product_created(self) -> tuple[str, ...]:
        return (
            self.products,
            CACHE_KEY_PRODUCT_FORM_DATA,
            f"{CACHE_KEY_POPULAR_PRODUCTS}:",
            f"{CACHE_KEY_SEARCH}:",
            f"{CACHE_KEY_RELATED_PRODUCTS}:",
        )

    def product_changed(self, product_id: str) -> tuple[str, ...]:
        """Update, status toggle and delete."""
        return (
            self.products,
            build_key(CACHE_KEY_PRODUCT, product_id),
            CACHE_KEY_PRODUCT_FORM_DATA,
            f"{CACHE_KEY_POPULAR_PRODUCTS}:",
            f"{CACHE_KEY_SEARCH}:",
            f"{CACHE_KEY_RELATED_PRODUCTS}:",
        )

    def product_popularity_changed(self, product_id: str) -> tuple[str, ...]:
        return (
            self.products,
            build_key(CACHE_KEY_PRODUCT, product_id),
            f"{CACHE_KEY_POPULAR_PRODUCTS}:",
        )

    def category_changed(self) -> tuple[str, ...]:
        return (self.categories, self.form_data, CACHE_KEY_PRODUCT_FORM_DATA)

    def brand_changed(self) -> tuple[str, ...]:
        return (self.brands, self.form_data, CACHE_KEY_PRODUCT_FORM_DATA)
