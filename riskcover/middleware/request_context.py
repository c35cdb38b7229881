"""
Request Context Middleware.

Every request gets a request_id, read from X-Request-ID when an upstream
proxy set a usable one and generated otherwise. It is echoed back in the
response, bound into the structlog context and copied into every error
body. The asserted signer is bound too, so each ledger event logged while
serving the request names its caller.

Health checks are logged at debug level only.
"""

import time
import uuid
from typing import Optional

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from riskcover.api.deps import SIGNER_HEADER

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 64
QUIET_PATHS = frozenset({"/health"})


def resolve_request_id(incoming: Optional[str]) -> str:
    """Reuse the upstream id unless it is empty, oversized or not printable."""
    if incoming and len(incoming) <= MAX_REQUEST_ID_LENGTH and incoming.isprintable():
        return incoming
    return str(uuid.uuid4())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Adds request_id, signer and timing to every request."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        signer = request.headers.get(SIGNER_HEADER)
        if signer:
            structlog.contextvars.bind_contextvars(signer=signer)

        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - start) * 1000, 2)

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Response-Time"] = f"{elapsed_ms}ms"

        log = logger.debug if request.url.path in QUIET_PATHS else logger.info
        log("request_completed", status=response.status_code, elapsed_ms=elapsed_ms)

        return response
