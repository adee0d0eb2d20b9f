"""Custom application exceptions.

Every exception carries a stable machine-readable ``code``. Callers branch on
the code, never on the message text.
"""


class AppException(Exception):
    """Base application exception."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str, status_code: int = 500, code: str | None = None):
        """Initialize exception with message, status code and error code."""
        self.message = message
        self.status_code = status_code
        if code is not None:
            self.code = code
        super().__init__(self.message)


class InvalidInputException(AppException):
    """Malformed or out-of-policy request data."""

    code = "INVALID_INPUT"

    def __init__(self, message: str = "Invalid input"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class UnauthorizedException(AppException):
    """Unauthorized access exception."""

    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    code = "FORBIDDEN"

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class NotFoundException(AppException):
    """Resource not found exception."""

    code = "NOT_FOUND"

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class InvalidStateException(AppException):
    """Operation not legal for the current lifecycle state."""

    code = "INVALID_STATE"

    def __init__(self, message: str = "Operation not allowed in current state"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class SlotConflictException(AppException):
    """Requested slot overlaps a booking that is not canceled."""

    code = "SLOT_CONFLICT"

    def __init__(self, message: str = "Slot already taken"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class BookingTimeoutException(AppException):
    """Booking transaction exceeded its time limit and was rolled back."""

    code = "BOOKING_TIMEOUT"

    def __init__(self, message: str = "Booking could not be completed in time, please retry"):
        """Initialize with 504 status code."""
        super().__init__(message, status_code=504)
