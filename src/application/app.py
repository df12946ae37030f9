#!/usr/bin/env python3
"""
FastAPI Application Entry Point

Main entry point for the Shop API. Configures the application, its
two-tier response cache, middleware, and routes.

Author: Platform Team
Date: 2026-10-18
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.application.api.dependencies import StatusServiceDep
from src.application.api.middleware import setup_middleware
from src.application.api.routes.admin import router as admin_router
from src.application.api.routes.catalog import brands_router, categories_router
from src.application.api.routes.health import router as health_router
from src.application.api.routes.products import router as products_router
from src.application.services import (
    CatalogInvalidation,
    CatalogService,
    InvalidationDispatcher,
    ProductService,
    StatusService,
)
from src.core.config.constants import Stage
from src.core.config.settings import Settings, get_settings
from src.core.exceptions import ShopBaseError
from src.core.logging.logger import get_logger, get_request_id, log_stage, setup_logging
from src.infrastructure.cache.cache_manager import CacheManager, build_cache_manager
from src.infrastructure.persistence import InMemoryDocumentStore

logger = get_logger(__name__)


# ============================================================================
# Application Lifespan
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle (startup and shutdown).

    Startup wires one CacheManager, one InvalidationDispatcher and the
    catalog services onto app.state. The distributed tier connecting (or
    not) never blocks startup.
    """
    settings: Settings = app.state.settings

    setup_logging(log_level=settings.logging.LOG_LEVEL, log_format=settings.logging.LOG_FORMAT)

    log_stage(
        logger,
        Stage.INITIALIZATION,
        "Starting Shop API",
        environment=settings.app.ENVIRONMENT,
        version=settings.app.APP_VERSION,
    )

    cache_manager: CacheManager = getattr(app.state, "cache_manager", None) or build_cache_manager(settings)
    await cache_manager.initialize()

    invalidation = InvalidationDispatcher(cache_manager)
    store = InMemoryDocumentStore()
    patterns = CatalogInvalidation(settings.API_BASE_PATH)

    categories = CatalogService(store, invalidation, "categories", "category_id", patterns.category_changed)
    brands = CatalogService(store, invalidation, "brands", "brand_id", patterns.brand_changed)

    app.state.cache_manager = cache_manager
    app.state.invalidation = invalidation
    app.state.store = store
    app.state.category_service = categories
    app.state.brand_service = brands
    app.state.product_service = ProductService(store, cache_manager, invalidation, patterns, categories, brands)
    app.state.status_service = StatusService(settings, cache_manager)

    logger.info("Application startup complete", redis_connected=cache_manager.distributed_connected)

    try:
        yield

    finally:
        log_stage(logger, Stage.SHUTDOWN, "Shutting down application")

        await invalidation.drain()
        await cache_manager.shutdown()

        logger.info("Application shutdown complete")


# ============================================================================
# Application Factory
# ============================================================================


def create_app(settings: Settings | None = None, cache_manager: CacheManager | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings (default: global settings)
        cache_manager: Pre-built cache manager (default: built from settings
                       at startup)

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app.APP_NAME,
        version=settings.app.APP_VERSION,
        description="Shop catalog API with a two-tier (in-process + Redis) response cache",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    if cache_manager is not None:
        app.state.cache_manager = cache_manager

    # ========================================================================
    # MIDDLEWARE REGISTRATION
    # ========================================================================
    setup_middleware(app, settings)

    # ========================================================================
    # ROUTER REGISTRATION
    # ========================================================================
    # Catalog routes are versioned under API_BASE_PATH (default /api/v1);
    # operator routes keep fixed paths (/health, /api/performance, ...).
    base_path = settings.API_BASE_PATH

    app.include_router(products_router, prefix=base_path)
    app.include_router(categories_router, prefix=base_path)
    app.include_router(brands_router, prefix=base_path)
    app.include_router(health_router)
    app.include_router(admin_router)

    @app.get("/", tags=["Root"])
    async def root(status: StatusServiceDep):
        """Root endpoint with API information."""
        return status.root()

    # ========================================================================
    # EXCEPTION HANDLERS
    # ========================================================================

    @app.exception_handler(ShopBaseError)
    async def shop_exception_handler(request: Request, exc: ShopBaseError):
        """Map domain errors to their HTTP status with a structured body."""
        if exc.request_id is None:
            exc.request_id = get_request_id()

        log = logger.warning if exc.status_code < 500 else logger.error
        log(
            f"Request error: {exc.message}",
            error_type=type(exc).__name__,
            status_code=exc.status_code,
            path=request.url.path,
        )

        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    return app


# Create application instance
app = create_app()


# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "src.application.app:app",
        host=settings.app.API_HOST,
        port=settings.app.API_PORT,
        reload=settings.app.ENVIRONMENT == "development",
        log_level=settings.logging.LOG_LEVEL.lower(),
    )
