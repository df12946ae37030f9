"""
Error Handling Middleware
=========================

Last line of defense for exceptions no route handler or exception handler
dealt with.

Domain errors (ShopBaseError subclasses) are turned into responses by the
exception handler registered in the app factory; anything else that escapes
a handler ends up here and becomes a JSON 500. Full details are logged
server-side; clients get a generic message (plus the traceback outside
production).

Author: Platform Team
Date: 2026-10-18
"""

import traceback
from collections.abc import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from src.core.logging.logger import get_logger, get_request_id

logger = get_logger(__name__)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Catch-all for unhandled exceptions.

    Ensures no unhandled exception reaches the server, every error is
    logged once with its request context, and internal details are not
    exposed unless include_traceback is set.
    """

    def __init__(self, app, include_traceback: bool = False):
        """
        Args:
            app: The ASGI application
            include_traceback: Include stack traces in error responses
                               (never in production)
        """
        super().__init__(app)
        self.include_traceback = include_traceback

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)

        except Exception as e:
            method = request.method
            path = request.url.path
            error_type = type(e).__name__

            logger.error(
                f"Unhandled exception in request: {method} {path}",
                method=method,
                path=path,
                error_type=error_type,
                error_message=str(e),
                exc_info=True,
            )

            error_response = {
                "error": "internal_server_error",
                "message": "An unexpected error occurred while processing your request",
                "error_type": error_type,
                "request_id": get_request_id(),
            }

            if self.include_traceback:
                error_response["traceback"] = traceback.format_exc()
                error_response["detail"] = str(e)

            return JSONResponse(status_code=500, content=error_response)


def add_error_handling_middleware(app, include_traceback: bool = False):
    """
    Add error handling middleware to the FastAPI application.

    Usage:
        add_error_handling_middleware(
            app,
            include_traceback=(settings.app.ENVIRONMENT == "development")
        )
    """
    app.add_middleware(ErrorHandlingMiddleware, include_traceback=include_traceback)
    logger.info("Error handling middleware registered", include_traceback=include_traceback)
