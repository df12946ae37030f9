"""
API Models Package
==================

Pydantic models for API request/response validation.

ORGANIZATION:
-------------
- admin.py: Operator endpoint response models
- catalog.py: Product, category and brand request models
"""

from src.application.api.models.admin import CacheClearResponse
from src.application.api.models.catalog import (
    CatalogEntryCreate,
    CatalogEntryUpdate,
    ProductCreate,
    ProductUpdate,
)

__all__ = [
    "CacheClearResponse",
    "CatalogEntryCreate",
    "CatalogEntryUpdate",
    "ProductCreate",
    "ProductUpdate",
]
