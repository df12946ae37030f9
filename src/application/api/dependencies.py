"""
FastAPI Dependency Injection Module
===================================

Reusable dependencies giving route handlers access to the application
singletons created in the lifespan and stored on `app.state`:

    app.state.cache_manager   → CacheManager
    app.state.invalidation    → InvalidationDispatcher
    app.state.product_service → ProductService
    app.state.category_service / app.state.brand_service → CatalogService
    app.state.status_service  → StatusService

Using app.state rather than module globals ties every instance to one app,
so each test app gets its own fresh cache and store.

Example:
    @router.get("/products/{product_id}")
    async def get_product(product_id: str, products: ProductServiceDep):
        return await products.get_product(product_id)
"""

from typing import Annotated

from fastapi import Depends, Request

from src.application.services import CatalogService, InvalidationDispatcher, ProductService, StatusService
from src.core.config.settings import Settings, get_settings
from src.infrastructure.cache.cache_manager import CacheManager

# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


def _from_state(request: Request, name: str):
    try:
        return getattr(request.app.state, name)
    except AttributeError as e:
        raise RuntimeError(
            f"{name} not initialized in app.state. "
            "This indicates the application lifespan startup didn't complete properly."
        ) from e


def get_cache_manager(request: Request) -> CacheManager:
    return _from_state(request, "cache_manager")


def get_invalidation(request: Request) -> InvalidationDispatcher:
    return _from_state(request, "invalidation")


def get_product_service(request: Request) -> ProductService:
    return _from_state(request, "product_service")


def get_category_service(request: Request) -> CatalogService:
    return _from_state(request, "category_service")


def get_brand_service(request: Request) -> CatalogService:
    return _from_state(request, "brand_service")


def get_status_service(request: Request) -> StatusService:
    return _from_state(request, "status_service")


# ============================================================================
# TYPE ALIASES FOR CLEANER ROUTE SIGNATURES
# ============================================================================
# Annotated[Type, Depends(provider)] lets routes declare `cache: CacheDep`
# instead of repeating `cache: CacheManager = Depends(get_cache_manager)`.

SettingsDep = Annotated[Settings, Depends(get_settings)]
CacheDep = Annotated[CacheManager, Depends(get_cache_manager)]
InvalidationDep = Annotated[InvalidationDispatcher, Depends(get_invalidation)]
ProductServiceDep = Annotated[ProductService, Depends(get_product_service)]
CategoryServiceDep = Annotated[CatalogService, Depends(get_category_service)]
BrandServiceDep = Annotated[CatalogService, Depends(get_brand_service)]
StatusServiceDep = Annotated[StatusService, Depends(get_status_service)]
