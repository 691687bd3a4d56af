"""
core/errors.py -- Domain exception taxonomy.

Every failure a route can report maps to one of these classes. The API layer
registers a single exception handler for DealershipError and renders
{success: false, code, message} with the class's status_code, so stores and
services raise domain errors without knowing anything about HTTP responses.

Status codes follow the public contract: duplicate records and bad logins are
400 (not 409/401) because existing clients branch on those codes.
"""

from __future__ import annotations


class DealershipError(Exception):
    """Base class for errors that carry an HTTP status and a client-safe message."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequest(DealershipError):
    status_code = 400
    code = "bad_request"
    default_message = "Bad request."


class Conflict(DealershipError):
    status_code = 400
    code = "conflict"
    default_message = "Resource already exists."


class InvalidCredentials(DealershipError):
    status_code = 400
    code = "invalid_credentials"
    default_message = "Invalid credentials"


class Unauthorized(DealershipError):
    status_code = 401
    code = "unauthorized"
    default_message = "Not authorized"


class NotFound(DealershipError):
    status_code = 404
    code = "not_found"
    default_message = "Not found."


class InternalError(DealershipError):
    """Store or provider failure that is not the client's fault."""
