"""Domain exceptions mapped to JSON error responses by the app factory."""
from __future__ import annotations


class ServiceError(Exception):
    """Base class for failures that carry a public message and HTTP status."""

    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"message": self.message}


class ValidationError(ServiceError):
    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(ServiceError):
    status_code = 401
    default_message = "Unauthorized"


class InvalidCredential(AuthenticationError):
    default_message = "Invalid email or password"


class AccountInactive(AuthenticationError):
    # Surfaced with the same wording as a bad password.
    default_message = "Invalid email or password"


class SessionRequired(AuthenticationError):
    default_message = "Unauthorized: No token provided"


class Forbidden(ServiceError):
    status_code = 403
    default_message = "Access denied"


class NotFound(ServiceError):
    status_code = 404
    default_message = "Not found"


class Conflict(ServiceError):
    status_code = 409
    default_message = "Resource already exists"
