"""
Error handling middleware with graceful degradation
"""

import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from app.core.config import settings
from app.deps.utils import sanitize_api_key

logger = logging.getLogger(__name__)

# Inline suggestions are optional; an empty list beats an error card
DEGRADABLE_PATHS = ("/api/videos/search",)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Converts uncaught exceptions into JSON error responses
    """

    def __init__(self, app, enable_graceful_degradation: bool = True):
        super().__init__(app)
        self.enable_graceful_degradation = enable_graceful_degradation

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            return self._handle_unexpected_exception(e, request)

    def _handle_unexpected_exception(self, exc: Exception, request: Request) -> JSONResponse:
        """
        Handle unexpected exceptions with graceful degradation

        Args:
            exc: Exception
            request: Request object

        Returns:
            JSON error response
        """
        message = sanitize_api_key(str(exc))
        logger.error(f"Unexpected exception: {type(exc).__name__} - {message}", exc_info=True)

        correlation_id = request.headers.get("X-Correlation-ID", "unknown")

        if self.enable_graceful_degradation and self._is_degradable_error(exc, request):
            return self._handle_graceful_degradation(exc, request, correlation_id)

        error = {
            "code": "INTERNAL_ERROR",
            "message": "Internal server error",
            "details": {},
            "requestId": correlation_id
        }
        if getattr(settings, 'debug', False):
            error["details"] = {
                "exception_type": type(exc).__name__,
                "exception_message": message
            }

        return JSONResponse(status_code=500, content={"error": error})

    def _is_degradable_error(self, exc: Exception, request: Request) -> bool:
        if request.url.path.startswith(DEGRADABLE_PATHS):
            return True
        return isinstance(exc, (ConnectionError, TimeoutError))

    def _handle_graceful_degradation(self, exc: Exception, request: Request, correlation_id: str) -> JSONResponse:
        if request.url.path.startswith(DEGRADABLE_PATHS):
            logger.warning(f"Video search degraded to empty results: {type(exc).__name__}")
            return JSONResponse(status_code=200, content={"videos": []})

        return JSONResponse(
            status_code=503,
            content={
                "error": {
                    "code": "SERVICE_UNAVAILABLE",
                    "message": "Service temporarily unavailable",
                    "details": {"degraded": True},
                    "requestId": correlation_id
                }
            }
        )
