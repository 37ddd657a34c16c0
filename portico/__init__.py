# =============================================================================
# portico/ - Convention-Based Web Server Bootstrap
# =============================================================================
# Wires a FastAPI app from a config file: ordered middleware, static
# directories, templates, route modules discovered on disk, plus helpers for
# signed tokens and file uploads.
#
# Usage:
#   from portico import start
#   start("config.py")
# =============================================================================

from portico.auth import create_auth_route, create_token, get_auth_user, verify_token
from portico.config import Settings, load_config
from portico.exceptions import (
    AuthenticationError,
    BadRequestError,
    ConfigurationError,
    NotFoundError,
    PayloadTooLargeError,
    PorticoError,
    RouteConfigurationError,
)
from portico.flash import flash, get_flashed_messages
from portico.middleware import get_params
from portico.server import create_app, start
from portico.upload import UploadRecord, create_upload_route, get_temp_dir, get_upload
from portico.views import render

__version__ = "1.0.0"

__all__ = [
    # Server
    "create_app",
    "start",
    "Settings",
    "load_config",
    # Request helpers
    "get_params",
    "render",
    "flash",
    "get_flashed_messages",
    # Tokens
    "create_token",
    "verify_token",
    "create_auth_route",
    "get_auth_user",
    # Uploads
    "create_upload_route",
    "get_upload",
    "get_temp_dir",
    "UploadRecord",
    # Errors
    "PorticoError",
    "ConfigurationError",
    "RouteConfigurationError",
    "NotFoundError",
    "BadRequestError",
    "PayloadTooLargeError",
    "AuthenticationError",
]
