"""
Admin Routes
============

GET    /api/performance     Cache statistics plus process memory and uptime
DELETE /api/cache/clear     Clear both cache tiers, or only keys containing
                            ?pattern=<substring>
GET    /api/docs            Endpoint index

/api/cache/clear is an operator action: the full clear wipes this
service's whole Redis database, which every instance shares.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from src.application.api.dependencies import CacheDep, StatusServiceDep
from src.application.api.models.admin import CacheClearResponse
from src.core.logging.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["Admin"])


@router.get("/performance")
async def performance(status: StatusServiceDep):
    """
    Performance snapshot.

    Returns:
        {status, cache, memory, uptime, environment, timestamp}
    """
    return status.performance()


@router.delete("/cache/clear", response_model=CacheClearResponse)
async def clear_cache(
    cache: CacheDep,
    pattern: str | None = Query(default=None, min_length=1, description="Only clear keys containing this"),
):
    """
    Clear cached data.

    Without `pattern` both tiers are flushed. With it, every key that
    contains the substring is removed from both tiers.
    """
    try:
        if pattern:
            removed = await cache.invalidate(pattern)
            logger.warning("Cache cleared by pattern", pattern=pattern, removed=removed)
            return CacheClearResponse(
                success=True,
                message=f"Cache entries matching '{pattern}' cleared",
                pattern=pattern,
                removed=removed,
            )

        await cache.flush_all()
        logger.warning("Cache cleared")
        return CacheClearResponse(success=True, message="Cache cleared successfully")

    except Exception as e:
        logger.error("Cache clear failed", pattern=pattern, error=str(e), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=CacheClearResponse(success=False, message="Failed to clear cache", pattern=pattern).model_dump(),
        )


@router.get("/docs")
async def api_docs(status: StatusServiceDep):
    """Endpoint index (the interactive OpenAPI UI lives at /docs)."""
    return status.docs()
