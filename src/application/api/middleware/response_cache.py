"""
Response Cache Middleware
=========================

Caches whole JSON responses of GET routes in the two-tier cache.

HOW A REQUEST FLOWS:
--------------------
1. Non-GET requests, unmatched paths, or caching switched off: pass through.
2. Key = "cache:" + path (+ "?" + raw query string).
3. Hit: the stored body is returned as-is with `X-Cache: HIT`. The route
   handler does not run.
4. Miss: the handler runs. A 2xx `application/json` response is buffered,
   stored with the matching rule's TTL, and forwarded with `X-Cache: MISS`.
   Error responses and handler exceptions are never stored.
5. A cache failure or an entry of the wrong shape is logged and the
   request is served by the handler as on a miss.

Stored entries hold the body text exactly as the handler produced it, so a
hit is byte-identical to the miss that populated it.

ROUTE RULES:
------------
A CacheRule matches its path and everything below it (`/api/v1/products`
also matches `/api/v1/products/42`); `exact=True` matches the path only.
The most specific (longest) matching rule wins.

Author: Platform Team
Date: 2026-10-18
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from src.core.config.constants import HEADER_CACHE_STATUS, Stage
from src.core.config.settings import Settings
from src.core.logging.logger import get_logger, log_stage
from src.infrastructure.cache.cache_manager import CacheManager, response_key

logger = get_logger(__name__)

CACHE_HIT = "HIT"
CACHE_MISS = "MISS"


@dataclass(frozen=True)
class CacheRule:
    """Caching policy for one route prefix."""

    path: str
    ttl: int
    use_distributed: bool = True
    exact: bool = False

    def matches(self, path: str) -> bool:
        if self.exact:
            return path == self.path
        prefix = self.path.rstrip("/")
        return path == prefix or path.startswith(prefix + "/")


def build_cache_rules(settings: Settings) -> list[CacheRule]:
    """
    Route cache policy.

    Catalog data changes rarely and is shared across instances, so it goes
    to both tiers. Health and performance snapshots are per-instance and
    stay local.
    """
    cache = settings.cache
    base = settings.API_BASE_PATH.rstrip("/")
    return [
        CacheRule(f"{base}/products", cache.CACHE_TTL_PRODUCTS),
        CacheRule(f"{base}/categories", cache.CACHE_TTL_CATEGORIES),
        CacheRule(f"{base}/brands", cache.CACHE_TTL_BRANDS),
        CacheRule("/api/performance", cache.CACHE_TTL_STATUS, use_distributed=False),
        CacheRule("/health", cache.CACHE_TTL_STATUS, use_distributed=False),
        CacheRule("/", cache.CACHE_TTL_ROOT, exact=True),
        CacheRule("/api/docs", cache.CACHE_TTL_DOCS),
    ]


class ResponseCacheMiddleware(BaseHTTPMiddleware):
    """
    Serve GET responses from the cache, populate it on miss.

    The CacheManager is looked up on `request.app.state.cache_manager`
    per request; until the lifespan has created it every request passes
    through uncached.
    """

    def __init__(self, app, rules: Iterable[CacheRule]):
        """
        Args:
            app: The ASGI application
            rules: Route policies; order does not matter
        """
        super().__init__(app)
        self.rules = sorted(rules, key=lambda rule: len(rule.path), reverse=True)

    def match(self, path: str) -> CacheRule | None:
        for rule in self.rules:
            if rule.matches(path):
                return rule
        return None

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method != "GET":
            return await call_next(request)

        cache: CacheManager | None = getattr(request.app.state, "cache_manager", None)
        rule = self.match(request.url.path)
        if cache is None or not cache.enabled or rule is None:
            return await call_next(request)

        key = response_key(request.url.path, request.url.query)

        hit = await self._lookup(cache, key, rule)
        if hit is not None:
            return hit

        response = await call_next(request)

        content_type = response.headers.get("content-type", "")
        if not 200 <= response.status_code < 300 or not content_type.startswith("application/json"):
            return response

        body = b"".join([chunk async for chunk in response.body_iterator])
        await self._store(cache, key, rule, response.status_code, body)

        fresh = Response(
            content=body,
            status_code=response.status_code,
            headers=dict(response.headers),
            background=response.background,
        )
        fresh.headers[HEADER_CACHE_STATUS] = CACHE_MISS
        return fresh

    async def _lookup(self, cache: CacheManager, key: str, rule: CacheRule) -> Response | None:
        """Cached response for `key`, or None so the handler runs."""
        try:
            cached = await cache.read(key, use_distributed=rule.use_distributed)
            if cached is None:
                return None
            if not _is_response_entry(cached):
                # Something else wrote under a response key; the miss path overwrites it
                log_stage(logger, Stage.RESPONSE_CACHE, "Ignoring malformed cache entry", level="warning", cache_key=key)
                return None

            log_stage(logger, Stage.RESPONSE_CACHE, "Response served from cache", level="debug", cache_key=key)
            return Response(
                content=cached["body"],
                status_code=cached["status"],
                media_type="application/json",
                headers={HEADER_CACHE_STATUS: CACHE_HIT},
            )
        except Exception as e:
            log_stage(logger, Stage.RESPONSE_CACHE, "Cache lookup failed", level="error", cache_key=key, error=str(e))
            return None

    async def _store(self, cache: CacheManager, key: str, rule: CacheRule, status: int, body: bytes) -> None:
        try:
            await cache.write(
                key,
                {"status": status, "body": body.decode("utf-8")},
                rule.ttl,
                use_distributed=rule.use_distributed,
            )
        except Exception as e:
            log_stage(logger, Stage.RESPONSE_CACHE, "Cache store failed", level="error", cache_key=key, error=str(e))
            return

        log_stage(
            logger, Stage.RESPONSE_CACHE, "Response cached", level="debug",
            cache_key=key, ttl=rule.ttl, distributed=rule.use_distributed,
        )


def _is_response_entry(value: Any) -> bool:
    return (
        isinstance(value, dict)
        and isinstance(value.get("status"), int)
        and isinstance(value.get("body"), str)
    )
