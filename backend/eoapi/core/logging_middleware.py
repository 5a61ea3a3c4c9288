"""Request logging middleware."""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("eoapi.requests")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with method, path, status, duration and body size.

    4xx responses log at WARNING and 5xx at ERROR, so filtered entities
    (404) and bad content ids (400) stand out from successful replays.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start = time.monotonic()
        response = await call_next(request)
        duration_ms = (time.monotonic() - start) * 1000

        status = response.status_code
        size = request.headers.get("content-length", "0")
        if status >= 500:
            log = logger.error
        elif status >= 400:
            log = logger.warning
        else:
            log = logger.info
        log(
            "%s %s → %d (%.0fms, %s bytes in)",
            request.method,
            request.url.path,
            status,
            duration_ms,
            size,
        )
        return response
