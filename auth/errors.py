"""
auth/errors.py -- Error taxonomy raised by the auth layer.

Every error carries a machine-readable code, a client-safe message, and the
HTTP status the transport should use. api/main.py registers one exception
handler for AuthError that renders all of them in the standard envelope.

ConstraintViolation is raised by the store only; AuthService translates it
into DuplicateUser before it reaches a caller.
"""

from __future__ import annotations


class AuthError(Exception):
    code = "auth_error"
    status_code = 400
    default_message = "Authentication error."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AuthError):
    """Missing or empty input. Client fixable."""

    code = "validation_error"
    status_code = 400
    default_message = "All fields are required."


class DuplicateUser(AuthError):
    code = "duplicate_user"
    status_code = 409
    default_message = "A user with that username or email already exists."


class InvalidCredentials(AuthError):
    """Unknown username or wrong password. Deliberately non-specific."""

    code = "invalid_credentials"
    status_code = 401
    default_message = "Invalid username or password."


class ConstraintViolation(AuthError):
    """UNIQUE constraint hit on insert (e.g. a concurrent registration)."""

    code = "constraint_violation"
    status_code = 409
    default_message = "Unique constraint violated."


class InternalError(AuthError):
    code = "internal_error"
    status_code = 500
    default_message = "An unexpected error occurred."
