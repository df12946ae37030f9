"""
Middleware Package
==================

AVAILABLE MIDDLEWARE:
---------------------
1. response_cache: Serve GET responses from the two-tier cache
2. error_handler: Catch-all JSON 500s for unhandled exceptions
3. request_logging: X-Request-ID propagation and request logs

MIDDLEWARE ORDERING:
--------------------
Starlette runs the LAST registered middleware FIRST:

Request flow:  Client → CORS → RequestLogging → ErrorHandling → ResponseCache → Handler

- RequestLogging is outermost so every log line of the request, including
  error logs, carries the request id.
- ErrorHandling sits outside ResponseCache, so an exception raised by a
  handler passes through the cache uncached and becomes a 500 here.
- ResponseCache is innermost: a cache hit skips only the route handler.

USAGE EXAMPLE:
--------------
    app = FastAPI()
    setup_middleware(app, settings)
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.core.config.constants import HEADER_CACHE_STATUS, HEADER_REQUEST_ID
from src.core.config.settings import Settings, get_settings
from src.core.logging.logger import get_logger

from .error_handler import ErrorHandlingMiddleware, add_error_handling_middleware
from .request_logging import RequestLoggingMiddleware, add_request_logging_middleware
from .response_cache import CacheRule, ResponseCacheMiddleware, build_cache_rules

logger = get_logger(__name__)


def setup_middleware(app: FastAPI, settings: Settings | None = None, rules: list[CacheRule] | None = None):
    """
    Register all middleware components in the correct order.

    Args:
        app: FastAPI application instance
        settings: Application settings (default: global settings)
        rules: Response cache rules (default: build_cache_rules(settings))
    """
    settings = settings or get_settings()
    rules = rules if rules is not None else build_cache_rules(settings)

    # 1. Response cache (innermost)
    app.add_middleware(ResponseCacheMiddleware, rules=rules)

    # 2. Error handling
    add_error_handling_middleware(
        app, include_traceback=(settings.app.ENVIRONMENT == "development")
    )

    # 3. Request logging + request id
    add_request_logging_middleware(app, log_level="INFO")

    # 4. CORS (outermost, so error responses carry CORS headers too)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.app.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[HEADER_REQUEST_ID, HEADER_CACHE_STATUS],
    )

    logger.info("All middleware components registered", cache_rules=len(rules))


__all__ = [
    "setup_middleware",
    "CacheRule",
    "ResponseCacheMiddleware",
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "build_cache_rules",
    "add_error_handling_middleware",
    "add_request_logging_middleware",
]
