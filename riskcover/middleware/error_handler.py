"""
Global Error Handler Middleware.

Last line of defence behind the CoverError exception handler. Everything
that escapes the routers is rendered in the same ErrorResponse shape the
business errors use, so clients only ever parse one error body:

- CoverError raised outside a route (another middleware, a lifespan
  hook) keeps its own code and status.
- A database that is locked or unreachable is a 503 the caller may retry.
- Anything else is a bug: 500 with a generic message and an error_id to
  quote when reporting it.

The X-Request-ID header is set here as well, because the request context
middleware never gets to decorate a response that was never produced.
"""

import traceback
import uuid
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from starlette.middleware.base import BaseHTTPMiddleware

from riskcover.config import settings
from riskcover.errors import CoverError, ErrorCode, ErrorDetail, ErrorResponse
from riskcover.middleware.request_context import REQUEST_ID_HEADER

logger = structlog.get_logger(__name__)

RETRY_AFTER_SECONDS = 1


def _error_body(
    code: ErrorCode,
    message: str,
    request_id: Optional[str],
    **details,
) -> dict:
    return ErrorResponse(
        error=ErrorDetail(code=code.value, message=message, details=details or None),
        request_id=request_id,
        timestamp=datetime.now(timezone.utc).isoformat(),
    ).model_dump()


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turns every exception that escaped the routers into an ErrorResponse."""

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            return await call_next(request)
        except CoverError as exc:
            response = self._render_cover_error(request, exc)
        except OperationalError as exc:
            response = self._render_unavailable(request, exc)
        except Exception as exc:
            response = self._render_internal(request, exc)

        request_id = getattr(request.state, "request_id", None)
        if request_id:
            response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @staticmethod
    def _render_cover_error(request: Request, exc: CoverError) -> JSONResponse:
        request_id = getattr(request.state, "request_id", None)
        logger.warning(
            "cover_error_outside_router",
            error_code=exc.code.value,
            message=exc.message,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_response(request_id).model_dump(),
        )

    @staticmethod
    def _render_unavailable(request: Request, exc: OperationalError) -> JSONResponse:
        request_id = getattr(request.state, "request_id", None)
        logger.error(
            "database_unavailable",
            path=request.url.path,
            method=request.method,
            error=str(exc.orig) if exc.orig is not None else str(exc),
        )
        return JSONResponse(
            status_code=503,
            content=_error_body(
                ErrorCode.SERVICE_UNAVAILABLE,
                "The ledger database is temporarily unavailable.",
                request_id,
            ),
            headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
        )

    @staticmethod
    def _render_internal(request: Request, exc: Exception) -> JSONResponse:
        request_id = getattr(request.state, "request_id", None)
        error_id = str(uuid.uuid4())

        logger.error(
            "unhandled_exception",
            error_id=error_id,
            path=request.url.path,
            method=request.method,
            error=str(exc),
            traceback=traceback.format_exc(),
        )

        details = {"error_id": error_id}
        if settings.debug:
            details["debug_hint"] = type(exc).__name__

        return JSONResponse(
            status_code=500,
            content=_error_body(
                ErrorCode.INTERNAL_ERROR,
                "An internal error occurred. Please try again later.",
                request_id,
                **details,
            ),
        )
