"""
Product Service
===============

Product reads and writes, with the application-level caches the product
pages rely on.

CACHING STRATEGY:
-----------------
Two layers cache product data:

1. Response cache (middleware): whole JSON responses of the product routes,
   keyed by path + query string.
2. Application cache (this service): computed values that several routes
   share, via CacheManager.get_or_compute():

   | key                                   | TTL   |
   |---------------------------------------|-------|
   | product:<id>                          | 600s  |
   | search:<q>:<page>:<limit>             | 180s  |
   | popular_products:<limit>              | 600s  |
   | related_products:<id>:<limit>         | 900s  |
   | product_form_data                     | 7200s |

Every write dispatches the invalidations for both layers after the store
write has completed. The write itself never waits for them.

Author: Platform Team
Date: 2026-10-18
"""

from typing import Any

from src.application.services.catalog_service import CatalogService, slugify
from src.application.services.invalidation import CatalogInvalidation, InvalidationDispatcher
from src.core.config.constants import (
    CACHE_KEY_POPULAR_PRODUCTS,
    CACHE_KEY_PRODUCT,
    CACHE_KEY_PRODUCT_FORM_DATA,
    CACHE_KEY_RELATED_PRODUCTS,
    CACHE_KEY_SEARCH,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    PRODUCT_SORT_FIELDS,
    PRODUCT_STATUSES,
    TTL_POPULAR_PRODUCTS,
    TTL_PRODUCT_DETAIL,
    TTL_PRODUCT_FORM_DATA,
    TTL_RELATED_PRODUCTS,
    TTL_SEARCH,
)
from src.core.exceptions import ConflictError, NotFoundError, ValidationError
from src.core.logging.logger import get_logger
from src.infrastructure.cache.cache_manager import CacheManager, build_key
from src.infrastructure.persistence import InMemoryDocumentStore

logger = get_logger(__name__)

COLLECTION = "products"


def _paginate(total: int, page: int, limit: int) -> dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": (total + limit - 1) // limit,
    }


def _check_paging(page: int, limit: int) -> None:
    if page < 1:
        raise ValidationError("page must be >= 1", details={"page": page})
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}", details={"limit": limit})


def _parse_sort(sort: str) -> tuple[str, bool]:
    """'-price' -> ('price', descending=True)"""
    descending = sort.startswith("-")
    field = sort.lstrip("-")
    if field not in PRODUCT_SORT_FIELDS:
        raise ValidationError(
            "Unsupported sort field",
            details={"sort": sort, "allowed": list(PRODUCT_SORT_FIELDS)},
        )
    return field, descending


class ProductService:
    """
    Product catalog operations.

    Usage:
        service = ProductService(store, cache_manager, dispatcher, patterns, categories, brands)
        page = await service.list_products(category=cat_id, sort="-price")
        product = await service.get_product(product_id)
    """

    def __init__(
        self,
        store: InMemoryDocumentStore,
        cache: CacheManager,
        invalidation: InvalidationDispatcher,
        patterns: CatalogInvalidation,
        categories: CatalogService,
        brands: CatalogService,
    ):
        self._store = store
        self._cache = cache
        self._invalidation = invalidation
        self._patterns = patterns
        self._categories = categories
        self._brands = brands

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def list_products(
        self,
        *,
        category: str | None = None,
        brand: str | None = None,
        status: str | None = None,
        min_price: float | None = None,
        max_price: float | None = None,
        sort: str = "-created_at",
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> dict[str, Any]:
        """
        Filtered, sorted, paginated product listing.

        Returns:
            {"products": [...], "pagination": {page, limit, total, pages}}
        """
        _check_paging(page, limit)
        sort_field, descending = _parse_sort(sort)

        def matches(product: dict[str, Any]) -> bool:
            if category and product.get("category_id") != category:
                return False
            if brand and product.get("brand_id") != brand:
                return False
            if status and product.get("status") != status:
                return False
            if min_price is not None and product["price"] < min_price:
                return False
            if max_price is not None and product["price"] > max_price:
                return False
            return True

        total = await self._store.count(COLLECTION, matches)
        products = await self._store.find(
            COLLECTION,
            matches,
            sort_by=sort_field,
            descending=descending,
            skip=(page - 1) * limit,
            limit=limit,
        )
        return {"products": products, "pagination": _paginate(total, page, limit)}

    async def get_product(self, product_id: str) -> dict[str, Any]:
        """
        Single product, cached under product:<id>.

        Raises:
            NotFoundError: Unknown id (misses are not cached)
        """
        product = await self._cache.get_or_compute(
            build_key(CACHE_KEY_PRODUCT, product_id),
            lambda: self._store.find_one(COLLECTION, product_id),
            TTL_PRODUCT_DETAIL,
        )
        if product is None:
            raise NotFoundError("Product not found", details={"id": product_id})
        return product

    async def search_products(self, query: str, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> dict[str, Any]:
        """Case-insensitive search over name and description of active products."""
        query = query.strip()
        if not query:
            raise ValidationError("Search query must not be empty")
        _check_paging(page, limit)

        async def compute() -> dict[str, Any]:
            needle = query.lower()

            def matches(product: dict[str, Any]) -> bool:
                text = f"{product['name']} {product.get('description', '')}".lower()
                return product["status"] == "active" and needle in text

            total = await self._store.count(COLLECTION, matches)
            products = await self._store.find(
                COLLECTION, matches, sort_by="views", descending=True,
                skip=(page - 1) * limit, limit=limit,
            )
            return {"query": query, "products": products, "pagination": _paginate(total, page, limit)}

        return await self._cache.get_or_compute(
            build_key(CACHE_KEY_SEARCH, query.lower(), page, limit), compute, TTL_SEARCH
        )

    async def popular_products(self, limit: int = 10) -> list[dict[str, Any]]:
        """Active products ordered by view count."""
        _check_paging(1, limit)
        return await self._cache.get_or_compute(
            build_key(CACHE_KEY_POPULAR_PRODUCTS, limit),
            lambda: self._store.find(
                COLLECTION, lambda p: p["status"] == "active", sort_by="views", descending=True, limit=limit
            ),
            TTL_POPULAR_PRODUCTS,
        )

    async def related_products(self, product_id: str, limit: int = 4) -> list[dict[str, Any]]:
        """Other active products from the same category."""
        _check_paging(1, limit)
        product = await self.get_product(product_id)

        return await self._cache.get_or_compute(
            build_key(CACHE_KEY_RELATED_PRODUCTS, product_id, limit),
            lambda: self._store.find(
                COLLECTION,
                lambda p: (
                    p["id"] != product_id
                    and p["status"] == "active"
                    and p.get("category_id") == product.get("category_id")
                ),
                sort_by="views",
                descending=True,
                limit=limit,
            ),
            TTL_RELATED_PRODUCTS,
        )

    async def form_data(self) -> dict[str, Any]:
        """Choices for the product edit form: categories, brands, statuses."""

        async def compute() -> dict[str, Any]:
            categories = await self._categories.list_all()
            brands = await self._brands.list_all()
            return {
                "categories": [{"id": c["id"], "name": c["name"]} for c in categories],
                "brands": [{"id": b["id"], "name": b["name"]} for b in brands],
                "statuses": list(PRODUCT_STATUSES),
            }

        return await self._cache.get_or_compute(CACHE_KEY_PRODUCT_FORM_DATA, compute, TTL_PRODUCT_FORM_DATA)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def create_product(self, data: dict[str, Any]) -> dict[str, Any]:
        await self._check_references(data)
        slug = slugify(data["name"])
        await self._ensure_unique_slug(slug)

        product = await self._store.insert(
            COLLECTION,
            {"status": "active", **data, "slug": slug, "views": 0},
        )
        logger.info("Product created", product_id=product["id"], slug=slug)
        self._invalidation.dispatch(*self._patterns.product_created())
        return product

    async def update_product(self, product_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        await self._require(product_id)
        await self._check_references(changes)

        if "name" in changes:
            changes = {**changes, "slug": slugify(changes["name"])}
            await self._ensure_unique_slug(changes["slug"], exclude_id=product_id)

        product = await self._store.update(COLLECTION, product_id, changes)
        logger.info("Product updated", product_id=product_id, fields=sorted(changes))
        self._invalidation.dispatch(*self._patterns.product_changed(product_id))
        return product

    async def toggle_status(self, product_id: str) -> dict[str, Any]:
        """Flip active <-> inactive (drafts become active)."""
        current = await self._require(product_id)
        new_status = "inactive" if current["status"] == "active" else "active"

        product = await self._store.update(COLLECTION, product_id, {"status": new_status})
        logger.info("Product status toggled", product_id=product_id, status=new_status)
        self._invalidation.dispatch(*self._patterns.product_changed(product_id))
        return product

    async def record_view(self, product_id: str) -> dict[str, Any]:
        """Increment the popularity counter."""
        current = await self._require(product_id)

        product = await self._store.update(COLLECTION, product_id, {"views": current.get("views", 0) + 1})
        self._invalidation.dispatch(*self._patterns.product_popularity_changed(product_id))
        return product

    async def delete_product(self, product_id: str) -> None:
        await self._require(product_id)
        await self._store.delete(COLLECTION, product_id)
        logger.info("Product deleted", product_id=product_id)
        self._invalidation.dispatch(*self._patterns.product_changed(product_id))

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _require(self, product_id: str) -> dict[str, Any]:
        # Writes always read the store, never the cache
        product = await self._store.find_one(COLLECTION, product_id)
        if product is None:
            raise NotFoundError("Product not found", details={"id": product_id})
        return product

    async def _check_references(self, data: dict[str, Any]) -> None:
        if data.get("category_id") and not await self._categories.exists(data["category_id"]):
            raise ValidationError("Unknown category", details={"category_id": data["category_id"]})
        if data.get("brand_id") and not await self._brands.exists(data["brand_id"]):
            raise ValidationError("Unknown brand", details={"brand_id": data["brand_id"]})

    async def _ensure_unique_slug(self, slug: str, exclude_id: str | None = None) -> None:
        clash = await self._store.count(COLLECTION, lambda p: p["slug"] == slug and p["id"] != exclude_id)
        if clash:
            raise ConflictError("Product already exists", details={"slug": slug})
