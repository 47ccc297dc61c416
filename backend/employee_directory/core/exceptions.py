"""
Application error taxonomy.

Every error carries the HTTP status it maps to; `main.py` registers a single
handler that renders them as `{"success": false, "error": "<message>"}`.
"""

from typing import Dict, Optional


class AppError(Exception):
    """Base class for errors that are reported to API clients."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        self.message = message or self.default_message
        self.headers = headers
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class ValidationError(AppError):
    status_code = 400
    default_message = "Validation failed"


class AuthenticationError(AppError):
    status_code = 401
    default_message = "Authentication failed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(AppError):
    status_code = 403
    default_message = "Access denied"


class AuthorizationError(ForbiddenError):
    default_message = "Insufficient permissions"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = 409
    default_message = "Resource conflict"


def format_validation_errors(errors) -> str:
    """
    Turn pydantic/FastAPI error dicts into one client-facing message.

    Only the first error is reported; custom validator messages are passed
    through without pydantic's "Value error, " prefix.
    """
    if not errors:
        return ValidationError.default_message
    error = errors[0]
    message = str(error.get("msg", ValidationError.default_message))
    if error.get("type") == "value_error":
        return message.removeprefix("Value error, ")
    field = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path"))
    return f"{field}: {message}" if field else message
