"""
Access logging middleware.
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger("tenantguard.access")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log one line per request. Credentials are never logged, only the scheme."""

    async def dispatch(self, request: Request, call_next) -> Response:
        started = time.perf_counter()
        response = await call_next(request)

        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
            auth_scheme=_auth_scheme(request),
        )
        return response


def _auth_scheme(request: Request) -> str | None:
    header = request.headers.get("authorization")
    if header:
        return header.split(" ", 1)[0].lower()
    if request.cookies:
        return "cookie"
    return None
