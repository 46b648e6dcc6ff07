"""Utils package for the SwipeMatch service."""

from swipematch.utils.clock import Clock, utcnow
from swipematch.utils.errors import (
    ConfigurationError,
    ConflictError,
    DatabaseError,
    InsufficientCreditsError,
    NotFoundError,
    StorageUnavailableError,
    SwipeMatchError,
    ValidationError,
)
from swipematch.utils.locks import KeyedLockRegistry, normalize_pair, pair_lock_key, user_lock_key
from swipematch.utils.logging import configure_logging, get_logger, log_error

__all__ = [
    "Clock",
    "ConfigurationError",
    "ConflictError",
    "DatabaseError",
    "InsufficientCreditsError",
    "KeyedLockRegistry",
    "NotFoundError",
    "StorageUnavailableError",
    "SwipeMatchError",
    "ValidationError",
    "configure_logging",
    "get_logger",
    "log_error",
    "normalize_pair",
    "pair_lock_key",
    "user_lock_key",
    "utcnow",
]
