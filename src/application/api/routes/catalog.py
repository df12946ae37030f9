"""
Category and Brand Routes
=========================

Mounted under API_BASE_PATH (default /api/v1). Categories and brands have
identical endpoints, so both routers are built by one factory.

GETs are covered by the response cache (categories 3600s, brands 1800s).
Writes invalidate the collection's cached responses and the product form
data, which lists both collections.
"""

from collections.abc import Callable

from fastapi import APIRouter, Depends, status

from src.application.api.dependencies import get_brand_service, get_category_service
from src.application.api.models.catalog import CatalogEntryCreate, CatalogEntryUpdate
from src.application.services import CatalogService


def build_catalog_router(prefix: str, tag: str, provider: Callable[..., CatalogService]) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[tag])

    @router.get("")
    async def list_entries(service: CatalogService = Depends(provider)):
        return {service.collection: await service.list_all()}

    @router.get("/{doc_id}")
    async def get_entry(doc_id: str, service: CatalogService = Depends(provider)):
        return await service.get(doc_id)

    @router.post("", status_code=status.HTTP_201_CREATED)
    async def create_entry(payload: CatalogEntryCreate, service: CatalogService = Depends(provider)):
        return await service.create(payload.model_dump())

    @router.put("/{doc_id}")
    async def update_entry(doc_id: str, payload: CatalogEntryUpdate, service: CatalogService = Depends(provider)):
        return await service.update(doc_id, payload.model_dump(exclude_unset=True, exclude_none=True))

    @router.delete("/{doc_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_entry(doc_id: str, service: CatalogService = Depends(provider)):
        await service.delete(doc_id)

    return router


categories_router = build_catalog_router("/categories", "Categories", get_category_service)
brands_router = build_catalog_router("/brands", "Brands", get_brand_service)
