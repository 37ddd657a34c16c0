# =============================================================================
# portico/middleware/errors.py - Error Chain
# =============================================================================
# The single place request-time failures end up:
#
# 1. Log: 404s go to the access log, everything else (with traceback) to the
#    error log
# 2. Run the after-route hooks in order; the first one returning a Response
#    answers the request; a hook that raises is logged and skipped
# 3. If no hook answers, default_error_handler does, so a request is never
#    left hanging
# =============================================================================

import inspect
import logging
from collections.abc import Callable, Sequence
from typing import Any

from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from portico.exceptions import default_error_handler, status_of

ErrorHook = Callable[[Request, Exception], Any]


class ErrorChainMiddleware:
    """ASGI middleware turning exceptions from inner stages into responses."""

    def __init__(
        self,
        app: ASGIApp,
        access_logger: logging.Logger,
        error_logger: logging.Logger,
        hooks: Sequence[ErrorHook] = (),
    ):
        self.app = app
        self.access_logger = access_logger
        self.error_logger = error_logger
        self.hooks = list(hooks)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            if response_started:
                # Too late to answer; let the server deal with it
                raise
            request = Request(scope, receive)
            self.log(request, exc)
            response = await self.handle(request, exc)
            await response(scope, receive, send)

    def log(self, request: Request, exc: Exception) -> None:
        if status_of(exc) == 404:
            remote = request.client.host if request.client else "-"
            url = request.url.path
            if request.url.query:
                url += f"?{request.url.query}"
            self.access_logger.info(f"{remote} 404 {request.method} {url}")
        else:
            self.error_logger.error(
                f"{request.method} {request.url.path} failed: {exc!r}",
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    async def handle(self, request: Request, exc: Exception) -> Response:
        for hook in self.hooks:
            try:
                result = hook(request, exc)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as hook_exc:
                # A failing hook is logged and skipped; the chain keeps going
                self.error_logger.error(
                    f"after_route hook {getattr(hook, '__name__', hook)!r} failed: {hook_exc!r}",
                    exc_info=(type(hook_exc), hook_exc, hook_exc.__traceback__),
                )
                continue
            if isinstance(result, Response):
                return result
        return await default_error_handler(request, exc)
