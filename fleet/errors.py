"""Domain errors raised by the service layer.

Routes never inspect status codes on generic exceptions. Each failure the
services can report is one of the classes below, and the API layer maps them
to HTTP responses in a single exception handler.
"""


class FleetError(Exception):
    """Base class for all errors the API reports to clients."""

    status_code = 500
    error = "Internal server error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.error)
        self.message = message or self.error


class InvalidArgument(FleetError):
    """Input failed validation before any store access."""

    status_code = 400
    error = "Validation error"


class InvalidCredentials(FleetError):
    status_code = 401
    error = "Invalid credentials"


class AuthenticationRequired(FleetError):
    status_code = 401
    error = "Access token required"


class InvalidToken(FleetError):
    status_code = 403
    error = "Invalid or expired token"


class AdminRequired(FleetError):
    status_code = 403
    error = "Admin access required"


class NotFound(FleetError):
    status_code = 404
    error = "Not found"


class Conflict(FleetError):
    status_code = 409
    error = "Duplicate entry"


class StoreUnavailable(FleetError):
    """The backing store failed. Callers own any retry policy."""

    status_code = 503
    error = "Service unavailable"
