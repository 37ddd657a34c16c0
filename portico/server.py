# =============================================================================
# portico/server.py - Application Factory
# =============================================================================
# Builds a FastAPI app from Settings with a fixed, ordered request pipeline
# and serves it with uvicorn.
#
# Usage:
#   from portico import start
#   start("config.py", {"port": 8080})
#
# Or, for an external ASGI server:
#   app = create_app(load_config("config.py"))
#   $ uvicorn site_app:app
# =============================================================================

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import uvicorn
from fastapi import APIRouter, FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send

from portico.auth.tokens import resolve_secret
from portico.config import Settings, load_config
from portico.exceptions import ConfigurationError, NotFoundError, forward_exception
from portico.logger import LogFactory, configure_logging
from portico.middleware import (
    AccessLogMiddleware,
    BodyParserMiddleware,
    ErrorChainMiddleware,
    FaviconMiddleware,
    RequestContextMiddleware,
    SecurityHeadersMiddleware,
    StaticDirectoriesMiddleware,
)
from portico.routing import inject_routes
from portico.upload import check_upload_dir
from portico.views import Views

logger = logging.getLogger(__name__)

# Responses smaller than this are sent uncompressed
GZIP_MINIMUM_SIZE = 1024


@dataclass(frozen=True)
class Stage:
    """A named step of the request pipeline; middleware is None for setup-only steps."""
    name: str
    middleware: Middleware | None = None


# =============================================================================
# Pipeline
# =============================================================================

def _flatten(hooks: Any) -> list[Any]:
    if hooks is None:
        return []
    if isinstance(hooks, (list, tuple)):
        flat = []
        for hook in hooks:
            flat.extend(_flatten(hook))
        return flat
    return [hooks]


def _hook_name(hook: Any) -> str:
    if isinstance(hook, Middleware):
        return getattr(hook.cls, "__name__", repr(hook.cls))
    return getattr(hook, "__name__", type(hook).__name__)


def _before_route_stage(hook: Any) -> Stage:
    """Wrap a dispatch(request, call_next) hook, or take a ready Middleware as-is."""
    if isinstance(hook, Middleware):
        return Stage(f"before-route:{_hook_name(hook)}", hook)
    if not callable(hook):
        raise ConfigurationError(
            f"before_route hook is not callable: {hook!r}",
            suggestion="Use async def hook(request, call_next) or a starlette Middleware",
        )
    return Stage(f"before-route:{_hook_name(hook)}", Middleware(BaseHTTPMiddleware, dispatch=hook))


def build_pipeline(settings: Settings, logs: LogFactory) -> list[Stage]:
    """
    The request pipeline, outermost stage first.

    Order is fixed:
        compression, cors, views, favicon, access-log, static,
        security-headers, flash, error-handler, body-parser,
        request-context, before-route hooks, routes, not-found

    The error handler sits right inside `flash`: it catches failures from
    every stage after it, and its answers still pass back out through the
    headers, logging and compression stages.
    """
    stages = [
        Stage("compression", Middleware(GZipMiddleware, minimum_size=GZIP_MINIMUM_SIZE)),
        Stage("cors", Middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )),
    ]

    if settings.views_dir:
        stages.append(Stage("views"))

    if settings.favicon_path:
        if not settings.favicon_path.is_file():
            raise ConfigurationError(
                f"Favicon not found: {settings.favicon_path}",
                suggestion="Fix the `favicon` setting or remove it",
            )
        stages.append(Stage("favicon", Middleware(FaviconMiddleware, path=settings.favicon_path)))

    stages.append(Stage("access-log", Middleware(AccessLogMiddleware, development=settings.is_development)))

    if settings.static:
        stages.append(Stage("static", Middleware(StaticDirectoriesMiddleware, directories=settings.static_dirs)))

    stages += [
        Stage("security-headers", Middleware(SecurityHeadersMiddleware)),
        Stage("flash", Middleware(
            SessionMiddleware,
            secret_key=settings.session_secret_key or resolve_secret(settings=settings),
        )),
        Stage("error-handler", Middleware(
            ErrorChainMiddleware,
            access_logger=logs.get("access"),
            error_logger=logs.get("error"),
            hooks=_flatten(settings.after_route),
        )),
        Stage("body-parser", Middleware(BodyParserMiddleware)),
        Stage("request-context", Middleware(RequestContextMiddleware, settings=settings)),
    ]

    stages += [_before_route_stage(hook) for hook in _flatten(settings.before_route)]

    stages += [Stage("routes"), Stage("not-found")]
    return stages


def _not_found_default(fallback: ASGIApp) -> ASGIApp:
    """Router default turning unmatched HTTP requests into NotFoundError."""

    async def not_found(scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            raise NotFoundError(scope.get("path"))
        await fallback(scope, receive, send)

    return not_found


# =============================================================================
# Factory
# =============================================================================

def create_app(settings: Settings) -> FastAPI:
    """
    Build the application for a set of settings.

    Args:
        settings: Settings from load_config()

    Returns:
        FastAPI: The configured app, with ``app.state.settings``,
        ``app.state.pipeline`` (stage names in order) and
        ``app.state.routes`` (registered route records)

    Raises:
        ConfigurationError: Missing favicon or route directory, or an
            `upload` directory outside <root>/temp
        RouteConfigurationError: Bad route declarations
    """
    check_upload_dir(settings)

    app = FastAPI(
        title=settings.name,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        exception_handlers={
            StarletteHTTPException: forward_exception,
            RequestValidationError: forward_exception,
        },
    )
    app.state.settings = settings

    names = []
    if settings.init is not None:
        settings.init(app)
        names.append("init")
    # Middleware added by the init hook stays outermost
    custom = list(app.user_middleware)

    stages = build_pipeline(settings, LogFactory(settings.log_dir))
    names += [stage.name for stage in stages]
    app.user_middleware = custom + [stage.middleware for stage in stages if stage.middleware is not None]

    if settings.views_dir:
        app.state.views = Views(settings.views_dir, settings.view_engine, settings.engine)

    router = APIRouter()
    app.state.routes = inject_routes(router, settings).records
    app.include_router(router)
    app.router.default = _not_found_default(app.router.default)

    app.state.pipeline = names
    logger.info(f"Built {settings.name}: {' -> '.join(names)}")
    return app


def start(config: str | Path | dict[str, Any] | Settings | None = None, *overrides: dict[str, Any], run: bool = True) -> FastAPI:
    """
    Load configuration, build the app and serve it.

    Args:
        config: Config file path, mapping or Settings
        *overrides: Mappings merged over the config, later wins
        run: Serve with uvicorn (blocks until shutdown); False only builds

    Returns:
        FastAPI: The application
    """
    settings = load_config(config, *overrides)
    configure_logging(settings)
    logger.info(f"Starting {settings.name} in {settings.env} mode")

    app = create_app(settings)

    if run:
        print(f"SERVER : {settings.name} started on port {settings.port}")
        uvicorn.run(
            app,
            host=settings.host,
            port=settings.port,
            log_level="debug" if settings.debug else "info",
        )
    return app


def iter_routes(app: FastAPI) -> Iterable[tuple[str, str]]:
    """(method, path) pairs injected from route modules, in registration order."""
    for record in app.state.routes:
        yield record.method, record.path
