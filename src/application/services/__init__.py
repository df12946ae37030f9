"""
Application Services Package
=============================

Business logic used by the API routes.

Controller → Service → Store / Cache

- Routes: HTTP request/response handling
- Services: catalog rules, application-level caching, invalidation
- Store/Cache: infrastructure

Services are created once in the application lifespan and stored on
`app.state`; routes receive them through dependencies.py.
"""

from src.application.services.catalog_service import CatalogService
from src.application.services.invalidation import CatalogInvalidation, InvalidationDispatcher
from src.application.services.product_service import ProductService
from src.application.services.status_service import StatusService

__all__ = [
    "CatalogInvalidation",
    "CatalogService",
    "InvalidationDispatcher",
    "ProductService",
    "StatusService",
]
