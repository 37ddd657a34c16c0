# =============================================================================
# portico/exceptions.py - Exceptions and Error Responses
# =============================================================================
# Every request-time failure ends up in the error chain, which only needs two
# things from an exception: its HTTP status and a client-safe message.
# Errors should tell HOW to fix, not just WHAT failed.
# =============================================================================

from typing import Any

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request


class PorticoError(Exception):
    """
    Base exception for portico.

    Carries an HTTP status so the error chain can answer with
    ``{"code": <status>, "msg": <message>}`` without knowing the subclass.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = self.message
        if self.suggestion:
            result += f"\n  Suggestion: {self.suggestion}"
        return result

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to the documented error response body."""
        return {"code": self.status_code, "msg": self.message}


# =============================================================================
# Startup Exceptions
# =============================================================================

class ConfigurationError(PorticoError):
    """Raised when the configuration cannot be loaded or is inconsistent."""

    def __init__(self, message: str, suggestion: str | None = None, **details: Any):
        super().__init__(
            message=message,
            status_code=500,
            suggestion=suggestion,
            details=details,
        )


class RouteConfigurationError(ConfigurationError):
    """Raised when a route module declares something that cannot be registered."""


# =============================================================================
# Request Exceptions
# =============================================================================

class NotFoundError(PorticoError):
    """Raised when no route matches the request."""

    def __init__(self, path: str | None = None):
        super().__init__(
            message="Not Found",
            status_code=404,
            details={"path": path} if path else None,
        )


class BadRequestError(PorticoError):
    """Raised when a request body cannot be parsed."""

    def __init__(self, message: str = "Bad Request", **details: Any):
        super().__init__(message=message, status_code=400, details=details)


class PayloadTooLargeError(PorticoError):
    """Raised when a request body exceeds the parser limit."""

    def __init__(self, limit: int):
        super().__init__(
            message="Payload Too Large",
            status_code=413,
            suggestion=f"Send a body smaller than {limit // 1024}kb",
            details={"limit": limit},
        )


class AuthenticationError(PorticoError):
    """Raised when a token fails signature or expiry checks."""

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message=message, status_code=401)


# =============================================================================
# Helpers for the Error Chain
# =============================================================================

def status_of(exc: BaseException) -> int:
    """HTTP status an exception maps to (500 when it carries none)."""
    if isinstance(exc, RequestValidationError):
        return 422
    status_code = getattr(exc, "status_code", None) or getattr(exc, "status", None)
    if isinstance(status_code, int) and 400 <= status_code < 600:
        return status_code
    return 500


def message_of(exc: BaseException) -> str:
    """Client-safe message for an exception."""
    if isinstance(exc, PorticoError):
        return exc.message
    if isinstance(exc, StarletteHTTPException):
        return str(exc.detail)
    if isinstance(exc, RequestValidationError):
        return "Validation error"
    return "Internal Server Error"


async def forward_exception(request: Request, exc: Exception):
    """
    Re-raise instead of answering.

    Installed in place of FastAPI's default HTTPException and validation
    handlers so those errors travel to the error chain like any other.
    """
    raise exc


async def default_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Terminal handler: answer with ``{"code": ..., "msg": ...}``."""
    status_code = status_of(exc)
    headers = getattr(exc, "headers", None) if isinstance(exc, StarletteHTTPException) else None
    return JSONResponse(
        status_code=status_code,
        content={"code": status_code, "msg": message_of(exc)},
        headers=headers,
    )
