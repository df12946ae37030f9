"""
Health Check Routes
===================

GET /health         Liveness payload, including the distributed cache's
                     connectivity ("connected" / "disconnected")
GET /health/cache    Per-tier cache health with Redis ping latency

The service reports "OK" whenever it can serve requests: an unreachable
Redis degrades caching, not availability.

Both routes sit under the local-only response cache rule for /health, so
load balancer polling is served from memory most of the time.
"""

from fastapi import APIRouter

from src.application.api.dependencies import StatusServiceDep

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check(status: StatusServiceDep):
    """
    Quick health check for load balancers.

    Returns:
        {status, timestamp, uptime, environment, memory, redis, version}
    """
    return status.health()


@router.get("/cache")
async def cache_health(status: StatusServiceDep):
    """
    Detailed cache health.

    Always 200: the tier status is in the body ("healthy", "degraded",
    "disabled", "unhealthy").
    """
    return await status.cache_health()
