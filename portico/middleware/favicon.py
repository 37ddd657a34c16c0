# =============================================================================
# portico/middleware/favicon.py - Favicon
# =============================================================================

from pathlib import Path

from starlette.responses import FileResponse, Response
from starlette.types import ASGIApp, Receive, Scope, Send

from portico.exceptions import ConfigurationError

FAVICON_PATH = "/favicon.ico"

# One year, in seconds
FAVICON_MAX_AGE = 365 * 24 * 60 * 60


class FaviconMiddleware:
    """
    Answer ``/favicon.ico`` from a file before the request reaches logging.

    Raises:
        ConfigurationError: At construction, if the icon file does not exist
    """

    def __init__(self, app: ASGIApp, path: Path):
        self.app = app
        self.path = Path(path)
        if not self.path.is_file():
            raise ConfigurationError(
                f"Favicon not found: {self.path}",
                suggestion="Fix the `favicon` setting or remove it",
                path=str(self.path),
            )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["path"] != FAVICON_PATH:
            await self.app(scope, receive, send)
            return

        method = scope["method"]
        if method in ("GET", "HEAD"):
            response: Response = FileResponse(
                self.path,
                media_type="image/x-icon",
                headers={"Cache-Control": f"public, max-age={FAVICON_MAX_AGE}"},
            )
        else:
            response = Response(
                status_code=200 if method == "OPTIONS" else 405,
                headers={"Allow": "GET, HEAD, OPTIONS"},
            )
        await response(scope, receive, send)
