# =============================================================================
# portico/auth/ - Token Authentication
# =============================================================================
# Signed tokens plus a dependency that reads them off requests.
#
# Usage:
#   from portico.auth import create_token, verify_token, create_auth_route
# =============================================================================

from portico.auth.dependencies import create_auth_route, extract_token, get_auth_user
from portico.auth.tokens import create_token, verify_token

__all__ = [
    "create_auth_route",
    "create_token",
    "extract_token",
    "get_auth_user",
    "verify_token",
]
