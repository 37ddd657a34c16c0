# =============================================================================
# portico/middleware/static.py - Static Directories
# =============================================================================
# Serves files from several directories mounted at the same URL root.
# Directories are tried in the order they were configured; the first one that
# has the file answers, and a miss in all of them falls through to the rest
# of the pipeline.
# =============================================================================

from pathlib import Path

from starlette.exceptions import HTTPException
from starlette.staticfiles import StaticFiles
from starlette.types import ASGIApp, Receive, Scope, Send


class StaticDirectoriesMiddleware:
    """ASGI middleware serving GET/HEAD requests from ordered directories."""

    def __init__(self, app: ASGIApp, directories: list[Path]):
        self.app = app
        # check_dir=False: a missing directory just never matches
        self.directories = [
            StaticFiles(directory=str(directory), check_dir=False)
            for directory in directories
        ]

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] not in ("GET", "HEAD"):
            await self.app(scope, receive, send)
            return

        for files in self.directories:
            try:
                response = await files.get_response(files.get_path(scope), scope)
            except HTTPException as exc:
                if exc.status_code == 404:
                    continue
                raise
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)
