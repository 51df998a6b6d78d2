import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from trellowatch.common.logging import get_logger

logger = get_logger("middleware")


def _log_level(method: str, status_code: int) -> int:
    # Trello re-probes every callback URL with HEAD; keep those out of INFO.
    if status_code >= 500:
        return logging.WARNING
    if method == "HEAD":
        return logging.DEBUG
    return logging.INFO


class AccessLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start_time = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start_time) * 1000

        logger.log(
            _log_level(request.method, response.status_code),
            "%s %s %d %.1fms signed=%s",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            "x-trello-webhook" in request.headers,
        )

        response.headers["X-Request-Duration-Ms"] = f"{duration_ms:.1f}"
        return response
