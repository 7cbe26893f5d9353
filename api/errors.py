"""
Error taxonomy for the Bookshelf API.

Every error raised by the stores, the token service or the auth dependency
derives from APIError and carries the HTTP status it maps to. The exception
handlers in api.main turn them into ErrorResponse bodies.
"""

from typing import Dict, Optional


class APIError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        detail: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None
    ):
        if message is not None:
            self.message = message
        self.detail = detail
        self.headers = headers
        super().__init__(self.message)


class ValidationError(APIError):
    """Missing or malformed input."""
    status_code = 400
    message = "Invalid request"


class InvalidId(ValidationError):
    """Identifier does not match the store's id format."""
    message = "Invalid book ID format"


class DuplicateUsername(APIError):
    status_code = 400
    message = "Username already exists"


class InvalidCredentials(APIError):
    """Unknown username or wrong password. Deliberately indistinguishable."""
    status_code = 400
    message = "Invalid username or password"


class Unauthorized(APIError):
    """No bearer token was presented."""
    status_code = 401
    message = "Access denied. Token missing."

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None):
        super().__init__(message, detail, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(APIError):
    """A bearer token was presented but could not be accepted."""
    status_code = 403
    message = "Invalid token"


class InvalidToken(Forbidden):
    """Bad signature, malformed or expired token."""


class NotFound(APIError):
    status_code = 404
    message = "Book not found"


class InternalError(APIError):
    """Unexpected store or infrastructure failure."""
    status_code = 500
    message = "Internal server error"
