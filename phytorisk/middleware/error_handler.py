"""
Global error handling middleware.
"""
import logging
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable

logger = logging.getLogger(__name__)


def _request_context(request: Request) -> dict:
    return {
        "path": request.url.path,
        "method": request.method,
        "client": request.client.host if request.client else None,
    }


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    Routes translate the scan service's expected errors themselves; this is
    the safety net for anything that escapes them. Error bodies always carry
    a ``detail`` field so clients can read every failure the same way.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        """
        Process the request and map escaped exceptions to JSON errors.

        Args:
            request: The incoming request
            call_next: The next middleware or route handler

        Returns:
            Response object
        """
        try:
            return await call_next(request)

        except ValueError as e:
            # Covers InvalidPayloadError and malformed input deeper down
            logger.warning(f"Invalid request: {e}", extra=_request_context(request))
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"detail": str(e)},
            )

        except Exception as e:
            logger.exception(f"Unhandled exception: {e}", extra=_request_context(request))
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"detail": "An unexpected error occurred"},
            )
