"""
core/errors.py -- Failure taxonomy for the credential and verification flows.

Services raise these; the API layer renders every AuthServiceError as the
same {success: false, message, code} envelope with the class's status code.
Nothing here is process-fatal -- the caller decides whether to retry.
"""

from __future__ import annotations


class AuthServiceError(Exception):
    """Base class. Subclasses pin the machine-readable code and HTTP status."""

    code = "error"
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AuthServiceError):
    """Missing or malformed input."""

    code = "validation_error"
    status_code = 400


class AuthError(AuthServiceError):
    """Bad credentials."""

    code = "bad_credentials"
    status_code = 401


class NotFoundError(AuthServiceError):
    code = "not_found"
    status_code = 404


class ConflictError(AuthServiceError):
    """Duplicate email, or an operation that conflicts with account state."""

    code = "conflict"
    status_code = 409


class InvalidCodeError(AuthServiceError):
    """No pending one-time code, or the submitted code does not match."""

    code = "invalid_code"
    status_code = 400


class ExpiredCodeError(AuthServiceError):
    code = "expired_code"
    status_code = 400


class DeliveryError(AuthServiceError):
    """The notification sender could not hand the message to the transport."""

    code = "delivery_failed"
    status_code = 502
