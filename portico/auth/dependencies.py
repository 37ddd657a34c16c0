# =============================================================================
# portico/auth/dependencies.py - Optional Authentication
# =============================================================================
# create_auth_route() builds a dependency that never rejects a request: it
# only records who the caller is, if anyone. Endpoints decide for themselves
# what an anonymous caller may do.
#
# Usage (in a route module):
#   routes = {"/me": {"get": [create_auth_route(), "me"]}}
#
#   async def me(request: Request):
#       user = get_auth_user(request)
#       ...
# =============================================================================

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from portico.auth.tokens import resolve_expire_in, verify_token
from portico.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

# Bearer extractor that yields None instead of rejecting
security_optional = HTTPBearer(auto_error=False)

TOKEN_QUERY_PARAM = "auth_token"


def extract_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = None,
) -> str | None:
    """Token from ``?auth_token=``, else from the ``Authorization: Bearer`` credentials."""
    token = request.query_params.get(TOKEN_QUERY_PARAM)
    if token:
        return token
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return None


def create_auth_route(
    expire_in: int | None = None,
    secret_key: str | None = None,
) -> Callable[..., Awaitable[None]]:
    """
    Build a dependency that sets ``request.state.auth_user``.

    Args:
        expire_in: Token lifetime override in seconds
        secret_key: Signing secret override

    Returns:
        An async FastAPI dependency. Defaults not given here are read from
        ``request.state.config`` at request time.

    Raises:
        ConfigurationError: If expire_in is zero or negative
    """
    if expire_in is not None:
        resolve_expire_in(expire_in)

    async def authenticate(
        request: Request,
        credentials: HTTPAuthorizationCredentials | None = Depends(security_optional),
    ) -> None:
        request.state.auth_user = None

        token = extract_token(request, credentials)
        if not token:
            return

        try:
            request.state.auth_user = verify_token(
                token,
                expire_in=expire_in,
                secret_key=secret_key,
                settings=getattr(request.state, "config", None),
            )
        except AuthenticationError as e:
            logger.debug(f"Continuing unauthenticated: {e.message}")

    return authenticate


def get_auth_user(request: Request) -> Any | None:
    """The user payload set by create_auth_route, or None."""
    return getattr(request.state, "auth_user", None)
