# =============================================================================
# portico/auth/tokens.py - Signed Tokens
# =============================================================================
# HS256 JWTs carrying an arbitrary user payload. Expiry is decided when the
# token is verified: a token is valid while now - iat <= expire_in, so the
# same token can be checked against different lifetimes.
#
# Claims:
#   {"user": <payload>, "iat": <issued-at, seconds since epoch>}
# =============================================================================

import logging
import time
from typing import Any

from jose import JWTError, jwt

from portico.config import Settings
from portico.exceptions import AuthenticationError, ConfigurationError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

# Fallbacks when neither an argument nor the settings provide a value
DEFAULT_SECRET_KEY = "token-secret-key"
DEFAULT_EXPIRE_IN = 30 * 86400  # 30 days


def _now() -> int:
    return int(time.time())


def resolve_secret(secret_key: str | None = None, settings: Settings | None = None) -> str:
    """Argument, then settings.token_secret_key, then DEFAULT_SECRET_KEY."""
    if secret_key:
        return secret_key
    if settings is not None and settings.token_secret_key:
        return settings.token_secret_key
    return DEFAULT_SECRET_KEY


def resolve_expire_in(expire_in: int | None = None, settings: Settings | None = None) -> int:
    """
    Argument, then settings.token_expire_in, then DEFAULT_EXPIRE_IN.

    Raises:
        ConfigurationError: If an explicit lifetime is zero or negative
    """
    if expire_in is not None:
        if expire_in <= 0:
            raise ConfigurationError(
                f"expire_in must be a positive number of seconds, got {expire_in}",
                suggestion="Pass None to use the configured or default lifetime",
            )
        return expire_in
    if settings is not None and settings.token_expire_in is not None:
        return settings.token_expire_in
    return DEFAULT_EXPIRE_IN


def create_token(user: Any, secret_key: str | None = None, settings: Settings | None = None) -> str:
    """
    Sign a user payload.

    Args:
        user: JSON-serializable payload (usually a dict with an id)
        secret_key: Signing secret; falls back to settings, then the default
        settings: Settings to read token_secret_key from

    Returns:
        The signed token string

    Example:
        token = create_token({"id": 7}, settings=request.state.config)
    """
    claims = {"user": user, "iat": _now()}
    return jwt.encode(claims, resolve_secret(secret_key, settings), algorithm=ALGORITHM)


def verify_token(
    token: str,
    expire_in: int | None = None,
    secret_key: str | None = None,
    settings: Settings | None = None,
) -> Any:
    """
    Check a token's signature and age and return its user payload.

    Args:
        token: Token produced by create_token
        expire_in: Lifetime in seconds; falls back to settings, then 30 days
        secret_key: Signing secret; falls back to settings, then the default
        settings: Settings to read token defaults from

    Returns:
        The user payload the token was created with

    Raises:
        AuthenticationError: Bad signature, malformed token, or expired
        ConfigurationError: expire_in given as zero or negative
    """
    try:
        claims = jwt.decode(token, resolve_secret(secret_key, settings), algorithms=[ALGORITHM])
    except JWTError as e:
        logger.debug(f"Token validation failed: {e}")
        raise AuthenticationError(f"Invalid token: {e}") from e

    issued_at = claims.get("iat")
    if not isinstance(issued_at, int) or "user" not in claims:
        raise AuthenticationError("Invalid token: missing claims")

    if _now() - issued_at > resolve_expire_in(expire_in, settings):
        raise AuthenticationError("Token has expired")

    return claims["user"]
