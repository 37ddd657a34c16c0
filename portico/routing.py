# =============================================================================
# portico/routing.py - Route Module Discovery
# =============================================================================
# Route files are plain Python modules declaring a `routes` mapping:
#
#   # routes/users.py
#   from portico import create_auth_route
#
#   routes = {
#       "/users": {"get": "list_users"},
#       "/users/{user_id}": {"get": [create_auth_route(), "get_user"]},
#   }
#
#   async def list_users(): ...
#   async def get_user(user_id: int): ...
#
# A handler is a callable, the name of a callable in the same module, or a
# list of those: every entry but the last runs as a dependency, the last is
# the endpoint. Names are checked when the module is injected, so a typo
# stops the server at startup instead of failing a request.
#
# Duplicate path + method pairs are rejected at startup.
# =============================================================================

import hashlib
import importlib.util
import logging
import sys
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Any

from fastapi import APIRouter, Depends

from portico.config import Settings
from portico.exceptions import ConfigurationError, RouteConfigurationError

logger = logging.getLogger(__name__)

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")


@dataclass(frozen=True)
class RouteRecord:
    """One registered path + method and where it came from."""
    path: str
    method: str
    endpoint: str
    source: str


def _load_module(file: Path) -> ModuleType:
    """Import a route file by location under a name unique to its path."""
    digest = hashlib.md5(str(file).encode("utf-8")).hexdigest()[:8]
    name = f"_portico_routes_{file.stem}_{digest}"
    spec = importlib.util.spec_from_file_location(name, file)
    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(name, None)
        raise
    return module


def _methods(verb: str, source: str, path: str) -> list[str]:
    verb = verb.upper()
    if verb == "ALL":
        return list(HTTP_METHODS)
    if verb not in HTTP_METHODS:
        raise RouteConfigurationError(
            f"Unknown HTTP verb '{verb.lower()}' for {path} in {source}",
            suggestion=f"Use one of: {', '.join(m.lower() for m in HTTP_METHODS)}, all",
            source=source,
            path=path,
        )
    return [verb]


def _flatten(handler: Any) -> list[Any]:
    if isinstance(handler, (list, tuple)):
        flat = []
        for item in handler:
            flat.extend(_flatten(item))
        return flat
    return [handler]


class RouteInjector:
    """
    Registers route modules on a FastAPI router.

    One injector keeps track of everything it registered, across all the
    directories it is given, so duplicates are caught between modules too.
    """

    def __init__(self, router: APIRouter):
        self.router = router
        self.records: list[RouteRecord] = []
        self._seen: dict[tuple[str, str], RouteRecord] = {}

    def inject(self, location: str | Path) -> list[RouteRecord]:
        """
        Inject every route module found at a location.

        Args:
            location: A directory of route modules (``*.py``, sorted by name,
                ``_``-prefixed files skipped) or a single route module

        Returns:
            The records registered from this location

        Raises:
            ConfigurationError: If the location does not exist
            RouteConfigurationError: On unknown handlers, verbs or duplicates
        """
        location = Path(location)
        if location.is_dir():
            files = sorted(
                file for file in location.glob("*.py")
                if not file.name.startswith("_")
            )
        elif location.is_file() and location.suffix == ".py":
            files = [location]
        else:
            raise ConfigurationError(
                f"Route directory not found: {location}",
                suggestion="Fix the `routes` setting or create the directory",
                path=str(location),
            )

        registered = []
        for file in files:
            registered.extend(self.inject_module(_load_module(file), source=str(file)))
        return registered

    def inject_module(self, module: ModuleType, source: str | None = None) -> list[RouteRecord]:
        """Register the ``routes`` declared by an already imported module."""
        source = source or module.__name__
        declared = getattr(module, "routes", None)
        if declared is None:
            logger.debug(f"No routes declared in {source}, skipping")
            return []
        if not isinstance(declared, Mapping):
            raise RouteConfigurationError(
                f"`routes` in {source} must be a mapping of path -> verb -> handler",
                source=source,
            )

        registered = []
        for path, verbs in declared.items():
            if not isinstance(path, str) or not path.startswith("/"):
                raise RouteConfigurationError(
                    f"Route path {path!r} in {source} must start with '/'",
                    suggestion=f"Declare it as '/{str(path).lstrip('/')}'",
                    source=source,
                    path=str(path),
                )
            if not isinstance(verbs, Mapping):
                raise RouteConfigurationError(
                    f"Route {path} in {source} must map verbs to handlers",
                    source=source,
                    path=path,
                )
            for verb, handler in verbs.items():
                chain = [self._resolve(module, source, path, item) for item in _flatten(handler)]
                if not chain:
                    raise RouteConfigurationError(
                        f"Empty handler list for {verb.upper()} {path} in {source}",
                        source=source,
                        path=path,
                    )
                for method in _methods(verb, source, path):
                    registered.append(self._register(path, method, chain, source))
        return registered

    def _resolve(self, module: ModuleType, source: str, path: str, handler: Any) -> Callable[..., Any]:
        if isinstance(handler, str):
            target = getattr(module, handler, None)
            if target is None:
                raise RouteConfigurationError(
                    f"Handler '{handler}' for {path} is not defined in {source}",
                    suggestion=f"Define `{handler}` in {source} or fix the route declaration",
                    source=source,
                    path=path,
                    handler=handler,
                )
            handler = target
        if not callable(handler):
            raise RouteConfigurationError(
                f"Handler for {path} in {source} is not callable: {handler!r}",
                source=source,
                path=path,
            )
        return handler

    def _register(self, path: str, method: str, chain: list[Callable[..., Any]], source: str) -> RouteRecord:
        endpoint = chain[-1]
        record = RouteRecord(
            path=path,
            method=method,
            endpoint=getattr(endpoint, "__name__", repr(endpoint)),
            source=source,
        )

        previous = self._seen.get((path, method))
        if previous is not None:
            raise RouteConfigurationError(
                f"Duplicate route {method} {path}: declared in {previous.source} and {source}",
                suggestion="Remove one of the declarations; each path + method may be registered once",
                path=path,
                method=method,
            )

        self.router.add_api_route(
            path,
            endpoint,
            methods=[method],
            dependencies=[Depends(stage) for stage in chain[:-1]],
            name=f"{record.endpoint}:{method}",
        )
        self._seen[(path, method)] = record
        self.records.append(record)
        logger.debug(f"Registered {method} {path} -> {record.endpoint} ({source})")
        return record


def inject_routes(router: APIRouter, settings: Settings) -> RouteInjector:
    """Inject every configured route directory, in declared order."""
    injector = RouteInjector(router)
    for directory in settings.route_dirs:
        injector.inject(directory)
    logger.info(f"Injected {len(injector.records)} routes from {len(settings.route_dirs)} location(s)")
    return injector
