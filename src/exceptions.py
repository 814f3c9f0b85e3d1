"""Custom exceptions for Safefetch with user-friendly messages.

Every error carries a stable ``identifier`` and the HTTP ``status_code`` the
API layer answers with. The core never raises these across the request
boundary; they travel inside ``Failure`` outcomes instead.
"""


class SafeFetchError(Exception):
    """Base exception for Safefetch errors."""

    identifier = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, user_hint: str | None = None):
        self.message = message
        self.user_hint = user_hint
        super().__init__(message)

    def __str__(self) -> str:
        if self.user_hint:
            return f"{self.message}\n  Hint: {self.user_hint}"
        return self.message


class InvalidTargetError(SafeFetchError):
    """Outbound URL is malformed, uses a disallowed scheme or a blocked host."""

    identifier = "INVALID_TARGET"
    status_code = 400


class NetworkError(SafeFetchError):
    """Transport failed before a response arrived (DNS, refused, timeout)."""

    identifier = "NETWORK_ERROR"
    status_code = 500


class BadRequestError(SafeFetchError):
    identifier = "BAD_REQUEST"
    status_code = 400


class ValidationError(SafeFetchError):
    """Inbound payload failed validation."""

    identifier = "VALIDATION_ERROR"
    status_code = 422


class UnauthorizedError(SafeFetchError):
    identifier = "UNAUTHORIZED"
    status_code = 401


class InternalServerError(SafeFetchError):
    """Server-side misconfiguration or unexpected failure."""

    identifier = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str = "Internal server error", user_hint: str | None = None):
        super().__init__(message=message, user_hint=user_hint)


def map_error_to_status(error: Exception) -> int:
    """Return the HTTP status for an error; unknown errors map to 500."""
    if isinstance(error, SafeFetchError):
        return error.status_code
    return 500
