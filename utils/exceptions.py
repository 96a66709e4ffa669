"""
Domain errors raised by the auth core and the resource handlers.

Handlers in api.errors turn any APIError into the uniform error envelope
``{"error": code, "message": ..., "status": ...}``. Services raise these,
never werkzeug HTTP exceptions.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class APIError(Exception):
    """Base class: carries the HTTP status and a machine-readable code."""
    code: str = "error"
    status: int = 400
    message: str = "Request failed"

    def __init__(self, message: Optional[str] = None, *, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)


class Unconfigured(APIError):
    """No signing secret is configured; every token operation fails closed."""
    code, status, message = "server_misconfigured", 500, "Server configuration error"


class StoreError(APIError):
    code, status, message = "internal_error", 500, "Internal server error"


class Unauthorized(APIError):
    code, status, message = "unauthorized", 401, "Unauthorized"


class MissingToken(Unauthorized):
    code, message = "missing_token", "Missing token"


class InvalidToken(Unauthorized):
    code, message = "invalid_token", "Invalid token"


class ExpiredToken(Unauthorized):
    code, message = "token_expired", "Token expired"


class InvalidCredentials(Unauthorized):
    # Same response for unknown email and wrong password
    code, message = "invalid_credentials", "Invalid email or password"


class UnknownSubject(Unauthorized):
    code, message = "user_not_found", "User not found"


class LoggedOut(Unauthorized):
    code, message = "logged_out", "User is logged out. Please login again."


class SecurityBreach(Unauthorized):
    code = "security_breach"
    message = "Token reuse detected. All sessions have been invalidated for security."


class StaleSession(APIError):
    """The user record changed between read and write (optimistic lock lost)."""
    code, status, message = "conflict", 409, "Session state changed concurrently"


class Forbidden(APIError):
    code, status, message = "forbidden", 403, "Forbidden: Not your item"


class NotFound(APIError):
    code, status, message = "not_found", 404, "Resource not found"


class Conflict(APIError):
    code, status, message = "conflict", 409, "Conflict"


class BadRequest(APIError):
    code, status, message = "bad_request", 400, "Bad request"
