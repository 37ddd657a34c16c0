# =============================================================================
# portico/middleware/context.py - Request Context
# =============================================================================
# Attaches the settings and a merged parameter view to every request:
#   request.state.config -> Settings
#   request.state.all    -> {**query, **body}   (body wins on conflicts)
# =============================================================================

from typing import Any

from starlette.datastructures import QueryParams
from starlette.requests import Request
from starlette.types import ASGIApp, Receive, Scope, Send

from portico.config import Settings
from portico.middleware.body_parser import multi_dict


class RequestContextMiddleware:
    """ASGI middleware setting ``config`` and ``all`` on request state."""

    def __init__(self, app: ASGIApp, settings: Settings):
        self.app = app
        self.settings = settings

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            state = scope.setdefault("state", {})
            state["config"] = self.settings

            params = multi_dict(QueryParams(scope.get("query_string", b"")).multi_items())
            body = state.get("body")
            if isinstance(body, dict):
                params.update(body)
            state["all"] = params

        await self.app(scope, receive, send)


def get_params(request: Request) -> dict[str, Any]:
    """Query and body parameters merged into one dict."""
    return getattr(request.state, "all", {})
