"""
Request logging middleware. Logs method, route, status, duration only.
Headers, bodies, cookies and query strings are never logged (session
cookie, tickers tied to a user).
"""
import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.scope.get("path", "")
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request_failed method=%s path=%s duration_ms=%.1f",
                request.method, path, (time.perf_counter() - start) * 1000,
            )
            raise
        logger.log(
            _level_for(response.status_code),
            "request_finished method=%s path=%s status=%s duration_ms=%.1f",
            request.method, path, response.status_code, (time.perf_counter() - start) * 1000,
        )
        return response
