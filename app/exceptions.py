"""Authentication errors.

Raised by the services and the credential store, rendered by the exception
handlers registered in ``main.py``. Every error carries the HTTP status it maps
to, a machine-readable code and a short message that is safe to show a client.
"""

from enum import Enum
from typing import Any


class AuthError(Exception):
    """Base exception for all AuthKit errors."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    default_message: str = "Server error."

    def __init__(self, message: str | None = None, **extra: Any):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)


class ValidationError(AuthError):
    """Malformed or unacceptable input."""

    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Invalid request."


class WeakPasswordError(ValidationError):
    code = "WEAK_PASSWORD"
    default_message = "Password does not meet the length policy."


class InvalidTokenError(ValidationError):
    """Token is unknown, already used, or superseded."""

    code = "INVALID_TOKEN"
    default_message = "Invalid token."


class ExpiredTokenError(ValidationError):
    """Token matched a record but its expiry has passed."""

    code = "EXPIRED_TOKEN"
    default_message = "Token has expired."


class DuplicateCredentialError(AuthError):
    status_code = 409
    code = "DUPLICATE_CREDENTIAL"
    default_message = "Email already in use in this application."


class NotFoundError(AuthError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Not found."


class UnauthorizedReason(str, Enum):
    NO_TOKEN = "NO_TOKEN"
    TOKEN_INVALID = "TOKEN_INVALID"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    NOT_VERIFIED = "NOT_VERIFIED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"


class UnauthorizedError(AuthError):
    """Caller could not be authenticated. ``reason`` says why, for diagnostics."""

    status_code = 401
    default_message = "Unauthorized"
    default_reason = UnauthorizedReason.INVALID_CREDENTIALS

    def __init__(self, message: str | None = None, reason: UnauthorizedReason | None = None, **extra: Any):
        super().__init__(message, **extra)
        self.reason = reason or self.default_reason
        self.code = self.reason.value


class TokenExpiredError(UnauthorizedError):
    default_message = "Unauthorized: Token expired"
    default_reason = UnauthorizedReason.TOKEN_EXPIRED


class TokenInvalidError(UnauthorizedError):
    default_message = "Unauthorized: Invalid token"
    default_reason = UnauthorizedReason.TOKEN_INVALID


class ForbiddenError(AuthError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Forbidden: Insufficient role permissions"


class DeliveryError(AuthError):
    """The email sender could not hand the message to the mail server."""

    status_code = 500
    code = "DELIVERY_ERROR"
    default_message = "Could not send email."
