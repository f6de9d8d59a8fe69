"""Error taxonomy for the authentication service.

Every failure a caller can trigger is an ``AppError`` subclass carrying a
stable ``kind``, an HTTP status code and a message that is safe to show to
the client. Services raise them; the exception handlers registered in
``authservice.api.errors`` turn them into responses.
"""

from fastapi import status


class AppError(Exception):
    """Base class for all application errors."""

    kind = "InternalError"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Something went very wrong"
    is_operational = True

    def __init__(self, message: str | None = None, details: dict | None = None):
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)

    @property
    def status(self) -> str:
        """'fail' for client errors, 'error' for server errors."""
        return "fail" if 400 <= self.status_code < 500 else "error"


class ValidationError(AppError):
    """400 Invalid input."""

    kind = "ValidationError"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid input data"


class MissingFields(ValidationError):
    """400 Required fields were not provided."""

    kind = "MissingFields"
    message = "Please provide email and password"


class DuplicateEmail(AppError):
    """409 Email already registered."""

    kind = "DuplicateEmail"
    status_code = status.HTTP_409_CONFLICT
    message = "Email already registered. Please use another email"


class InvalidCredentials(AppError):
    """401 Email/password mismatch. Deliberately does not say which one."""

    kind = "InvalidCredentials"
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Incorrect email or password"


class InvalidOrExpiredOTP(AppError):
    """400 OTP did not match or has expired."""

    kind = "InvalidOrExpiredOTP"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "OTP is invalid or has expired"


class Unauthenticated(AppError):
    """401 No usable session token."""

    kind = "Unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "You are not logged in. Please log in to get access"


class InvalidToken(Unauthenticated):
    """401 Token signature or structure is invalid."""

    kind = "InvalidToken"
    message = "Invalid token. Please log in again"


class ExpiredToken(Unauthenticated):
    """401 Token is past its expiry."""

    kind = "ExpiredToken"
    message = "Expired token. Please log in again"


class StaleCredentials(AppError):
    """401 Token was issued before the last password change."""

    kind = "StaleCredentials"
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Password was recently changed. Please log in again"


class UserNotFound(AppError):
    """401 The token's subject no longer exists."""

    kind = "UserNotFound"
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "The user belonging to this token no longer exists"


class DeliveryError(AppError):
    """502 Outbound email could not be delivered."""

    kind = "DeliveryError"
    status_code = status.HTTP_502_BAD_GATEWAY
    message = "There was an error sending the email. Please try again later"


class InternalError(AppError):
    """500 Unexpected failure. Never described to the client in production."""

    is_operational = False
