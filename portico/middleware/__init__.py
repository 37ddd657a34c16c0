# =============================================================================
# portico/middleware/ - Pipeline Stages
# =============================================================================
# ASGI middleware used by portico.server to build the request pipeline:
# - favicon.py: /favicon.ico from a file
# - access_log.py: failed-request logging
# - static.py: ordered static directories
# - security.py: hardening response headers
# - body_parser.py: JSON / XML / URL-encoded bodies
# - context.py: request.state.config and request.state.all
# - errors.py: the error chain (logging + after-route hooks)
# =============================================================================

from portico.middleware.access_log import AccessLogMiddleware
from portico.middleware.body_parser import BodyParserMiddleware
from portico.middleware.context import RequestContextMiddleware, get_params
from portico.middleware.errors import ErrorChainMiddleware
from portico.middleware.favicon import FaviconMiddleware
from portico.middleware.security import SecurityHeadersMiddleware
from portico.middleware.static import StaticDirectoriesMiddleware

__all__ = [
    "AccessLogMiddleware",
    "BodyParserMiddleware",
    "ErrorChainMiddleware",
    "FaviconMiddleware",
    "RequestContextMiddleware",
    "SecurityHeadersMiddleware",
    "StaticDirectoriesMiddleware",
    "get_params",
]
