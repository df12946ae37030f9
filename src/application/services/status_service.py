"""
Status Service
==============

Builds the operator-facing payloads: health, performance, root info and
the endpoint index served at /api/docs.

Process figures (memory, uptime) come from psutil so they describe this
worker process, not the host.

Author: Platform Team
Date: 2026-10-18
"""

import time
from datetime import datetime, timezone
from typing import Any

import psutil

from src.core.config.settings import Settings
from src.infrastructure.cache.cache_manager import CacheManager

HEALTH_STATUS_OK = "OK"


def process_memory() -> dict[str, Any]:
    """Resident/virtual memory of the current process, in bytes."""
    process = psutil.Process()
    info = process.memory_info()
    return {
        "rss": info.rss,
        "vms": info.vms,
        "percent": round(process.memory_percent(), 2),
    }


def process_uptime() -> float:
    """Seconds since the current process started."""
    return round(time.time() - psutil.Process().create_time(), 3)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class StatusService:
    """Operator payloads for one application instance."""

    def __init__(self, settings: Settings, cache: CacheManager):
        self._settings = settings
        self._cache = cache

    def health(self) -> dict[str, Any]:
        """
        Liveness payload.

        The service is "OK" whether or not Redis is reachable; the
        distributed tier's connectivity is reported separately.
        """
        return {
            "status": HEALTH_STATUS_OK,
            "timestamp": _timestamp(),
            "uptime": process_uptime(),
            "environment": self._settings.app.ENVIRONMENT,
            "memory": process_memory(),
            "redis": "connected" if self._cache.distributed_connected else "disconnected",
            "version": self._settings.app.APP_VERSION,
        }

    def performance(self) -> dict[str, Any]:
        return {
            "status": HEALTH_STATUS_OK,
            "cache": self._cache.stats(),
            "memory": process_memory(),
            "uptime": process_uptime(),
            "environment": self._settings.app.ENVIRONMENT,
            "timestamp": _timestamp(),
        }

    async def cache_health(self) -> dict[str, Any]:
        return await self._cache.health_check()

    def root(self) -> dict[str, Any]:
        app = self._settings.app
        return {
            "name": app.APP_NAME,
            "version": app.APP_VERSION,
            "environment": app.ENVIRONMENT,
            "docs": "/api/docs",
            "health": "/health",
        }

    def docs(self) -> dict[str, Any]:
        base = self._settings.API_BASE_PATH.rstrip("/")
        return {
            "name": self._settings.app.APP_NAME,
            "version": self._settings.app.APP_VERSION,
            "openapi": "/docs",
            "endpoints": {
                "products": {
                    "list": f"GET {base}/products",
                    "search": f"GET {base}/products/search?q=",
                    "popular": f"GET {base}/products/popular",
                    "form_data": f"GET {base}/products/form-data",
                    "detail": f"GET {base}/products/{{id}}",
                    "related": f"GET {base}/products/{{id}}/related",
                    "create": f"POST {base}/products",
                    "update": f"PUT {base}/products/{{id}}",
                    "toggle_status": f"PATCH {base}/products/{{id}}/status",
                    "record_view": f"POST {base}/products/{{id}}/views",
                    "delete": f"DELETE {base}/products/{{id}}",
                },
                "categories": f"{base}/categories",
                "brands": f"{base}/brands",
                "health": "GET /health",
                "performance": "GET /api/performance",
                "cache_clear": "DELETE /api/cache/clear",
            },
        }
