"""
Product Routes
==============

Mounted under API_BASE_PATH (default /api/v1).

Every GET here is covered by the response cache rule for /products
(300s, both tiers). Writes respond as soon as the store write completes;
the matching cache invalidations run in the background.

Static paths (/search, /popular, /form-data) are declared before
/{product_id} so they are not captured as ids.
"""

from fastapi import APIRouter, Query, status

from src.application.api.dependencies import ProductServiceDep
from src.application.api.models.catalog import ProductCreate, ProductUpdate
from src.core.config.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

router = APIRouter(prefix="/products", tags=["Products"])


@router.get("")
async def list_products(
    products: ProductServiceDep,
    category: str | None = None,
    brand: str | None = None,
    status_filter: str | None = Query(default=None, alias="status"),
    min_price: float | None = Query(default=None, ge=0),
    max_price: float | None = Query(default=None, ge=0),
    sort: str = "-created_at",
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
):
    """Filtered, sorted, paginated listing: {products, pagination}."""
    return await products.list_products(
        category=category,
        brand=brand,
        status=status_filter,
        min_price=min_price,
        max_price=max_price,
        sort=sort,
        page=page,
        limit=limit,
    )


@router.get("/search")
async def search_products(
    products: ProductServiceDep,
    q: str = Query(..., min_length=1),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
):
    return await products.search_products(q, page=page, limit=limit)


@router.get("/popular")
async def popular_products(products: ProductServiceDep, limit: int = Query(default=10, ge=1, le=MAX_PAGE_SIZE)):
    return {"products": await products.popular_products(limit)}


@router.get("/form-data")
async def product_form_data(products: ProductServiceDep):
    """Choices for the product form: categories, brands, statuses."""
    return await products.form_data()


@router.get("/{product_id}")
async def get_product(product_id: str, products: ProductServiceDep):
    return await products.get_product(product_id)


@router.get("/{product_id}/related")
async def related_products(
    product_id: str,
    products: ProductServiceDep,
    limit: int = Query(default=4, ge=1, le=MAX_PAGE_SIZE),
):
    return {"products": await products.related_products(product_id, limit)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_product(payload: ProductCreate, products: ProductServiceDep):
    return await products.create_product(payload.model_dump())


@router.put("/{product_id}")
async def update_product(product_id: str, payload: ProductUpdate, products: ProductServiceDep):
    return await products.update_product(product_id, payload.model_dump(exclude_unset=True, exclude_none=True))


@router.patch("/{product_id}/status")
async def toggle_product_status(product_id: str, products: ProductServiceDep):
    return await products.toggle_status(product_id)


@router.post("/{product_id}/views")
async def record_product_view(product_id: str, products: ProductServiceDep):
    product = await products.record_view(product_id)
    return {"id": product["id"], "views": product["views"]}


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(product_id: str, products: ProductServiceDep):
    await products.delete_product(product_id)
