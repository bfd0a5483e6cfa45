"""Domain error taxonomy translated to HTTP responses by the app handlers."""

from __future__ import annotations


class SantaError(Exception):
    """Base class for expected request failures."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(SantaError):
    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(SantaError):
    """Missing, invalid or expired session (or bad login credentials)."""

    status_code = 401
    default_message = "Not authenticated"

    def __init__(self, message: str | None = None, *, clear_cookie: bool = False) -> None:
        super().__init__(message)
        self.clear_cookie = clear_cookie


class AuthorizationError(SantaError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(SantaError):
    status_code = 404
    default_message = "Not found"


class ConflictError(SantaError):
    status_code = 409
    default_message = "Conflict"
