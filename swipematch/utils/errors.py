"""Custom exceptions for the SwipeMatch service."""

from typing import Any, Dict, Optional


class SwipeMatchError(Exception):
    """Base exception for all SwipeMatch errors."""

    retryable = False

    def __init__(self, message: str, status_code: int = 500, details: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the error with a message and optional details.

        Args:
            message (str): Error message describing what went wrong.
            status_code (int): HTTP status code associated with the error (default 500).
            details (Optional[Dict[str, Any]]): Additional context or debug information.
        """
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(SwipeMatchError):
    """Raised when there's an issue with the application configuration."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, 500, details)


class DatabaseError(SwipeMatchError):
    """Raised when a database operation fails for a non-transient reason."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, 500, details)


class ValidationError(SwipeMatchError):
    """Raised when input validation fails."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, 400, details)


class NotFoundError(SwipeMatchError):
    """Raised when a requested user or match does not exist."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, 404, details)


class InsufficientCreditsError(SwipeMatchError):
    """
    Raised when a positive swipe is attempted without a remaining credit.

    The caller must wait for the daily reset or be granted credits before
    retrying; repeating the request immediately will fail the same way.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        error_details = details or {}
        error_details.setdefault("credits_remaining", 0)
        super().__init__(message, 403, error_details)


class ConflictError(SwipeMatchError):
    """
    Raised by storage when a unique record (swipe, match, username) already exists.

    The match engine resolves swipe and match conflicts by returning the
    existing record.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, 409, details)


class StorageUnavailableError(SwipeMatchError):
    """Raised when storage cannot be reached or a lock is not obtained in time."""

    retryable = True

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, 503, details)
