"""Custom application exceptions."""


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class UnauthorizedException(AppException):
    """Unauthorized access exception."""

    def __init__(self, message: str = "Unauthorized"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ValidationException(AppException):
    """Input rejected locally, before any remote call."""

    def __init__(self, message: str = "Validation error"):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422)


class AuthException(AppException):
    """Authentication provider rejected the request."""

    def __init__(self, message: str = "Authentication failed"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class StoreException(AppException):
    """Document store request failed (network, permission, quota)."""

    def __init__(self, message: str = "Document store request failed"):
        """Initialize with 502 status code."""
        super().__init__(message, status_code=502)


class SubscriptionException(AppException):
    """Error delivered asynchronously to a live subscription."""

    def __init__(self, message: str = "Subscription failed"):
        """Initialize with 503 status code."""
        super().__init__(message, status_code=503)
