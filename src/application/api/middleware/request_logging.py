"""
Request Logging Middleware
==========================

Correlates and logs every HTTP request.

For each request this middleware:
1. Takes the caller's `X-Request-ID` header, or generates one
2. Binds it to the logging context so every log line of the request
   carries `request_id`
3. Logs the request and its outcome (status, duration, cache status)
4. Echoes the id back in the `X-Request-ID` response header

It does NOT log request/response bodies or sensitive headers.

Author: Platform Team
Date: 2026-10-18
"""

import time
import uuid
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from src.core.config.constants import HEADER_CACHE_STATUS, HEADER_REQUEST_ID
from src.core.logging.logger import clear_request_id, get_logger, set_request_id

logger = get_logger(__name__)

SENSITIVE_HEADERS = {
    "authorization",
    "cookie",
    "x-api-key",
    "x-auth-token",
}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Request id propagation plus request/response logging.

    Request lines are logged at DEBUG; completions at the configured level.
    """

    def __init__(self, app, log_level: str = "INFO"):
        """
        Args:
            app: The ASGI application
            log_level: Level used for request completion logs
        """
        super().__init__(app)
        self.log_level = log_level.lower()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(HEADER_REQUEST_ID) or str(uuid.uuid4())
        set_request_id(request_id)

        start_time = time.perf_counter()
        method = request.method
        path = request.url.path

        logger.debug(
            f"Incoming request: {method} {path}",
            method=method,
            path=path,
            query_params=str(request.query_params) if request.query_params else None,
            headers=self._sanitize_headers(dict(request.headers)),
            client_host=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)

            getattr(logger, self.log_level)(
                f"Request completed: {method} {path}",
                method=method,
                path=path,
                status_code=response.status_code,
                cache=response.headers.get(HEADER_CACHE_STATUS),
                duration_seconds=round(time.perf_counter() - start_time, 4),
            )

            response.headers[HEADER_REQUEST_ID] = request_id
            return response

        except Exception as e:
            logger.error(
                f"Request failed: {method} {path}",
                method=method,
                path=path,
                error=str(e),
                error_type=type(e).__name__,
                duration_seconds=round(time.perf_counter() - start_time, 4),
                exc_info=True,
            )
            raise

        finally:
            clear_request_id()

    def _sanitize_headers(self, headers: dict) -> dict:
        """Replace sensitive header values with "[REDACTED]"."""
        return {
            key: "[REDACTED]" if key.lower() in SENSITIVE_HEADERS else value
            for key, value in headers.items()
        }


def add_request_logging_middleware(app, log_level: str = "INFO"):
    """
    Add request logging middleware to the FastAPI application.

    Register it last (outermost) so the request id is bound before any
    other middleware logs.
    """
    app.add_middleware(RequestLoggingMiddleware, log_level=log_level)
    logger.info("Request logging middleware registered", log_level=log_level)
