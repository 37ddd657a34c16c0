# =============================================================================
# portico/middleware/access_log.py - Request Logging
# =============================================================================
# Logs failed requests (status >= 400) on the "portico.requests" logger.
#
# Formats:
#   dev    -> GET /missing 404 1.234 ms - 31
#   common -> 127.0.0.1 - - [10/Oct/2024:13:55:36 +0000] "GET /missing HTTP/1.1" 404 31
# =============================================================================

import logging
import time
from datetime import datetime, timezone

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("portico.requests")


def _original_url(request: Request) -> str:
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


def format_dev(request: Request, response: Response, elapsed_ms: float) -> str:
    """Short, colorless line for local development."""
    length = response.headers.get("content-length", "-")
    return (
        f"{request.method} {_original_url(request)} {response.status_code} "
        f"{elapsed_ms:.3f} ms - {length}"
    )


def format_common(request: Request, response: Response, elapsed_ms: float) -> str:
    """Apache common log format."""
    remote = request.client.host if request.client else "-"
    timestamp = datetime.now(timezone.utc).strftime("%d/%b/%Y:%H:%M:%S %z")
    version = request.scope.get("http_version", "1.1")
    length = response.headers.get("content-length", "-")
    return (
        f'{remote} - - [{timestamp}] "{request.method} {_original_url(request)} '
        f'HTTP/{version}" {response.status_code} {length}'
    )


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Log responses with status >= 400; successful ones are skipped."""

    def __init__(self, app, development: bool = True):
        super().__init__(app)
        self.format = format_dev if development else format_common

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        if response.status_code >= 400:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info(self.format(request, response, elapsed_ms))
        return response
