"""Storage backends for the SwipeMatch service."""

from swipematch.config import Settings
from swipematch.storage.base import Storage, UnitOfWork
from swipematch.storage.memory import MemoryStorage
from swipematch.storage.sql import SqlStorage


def create_storage(settings: Settings) -> Storage:
    """Build the storage backend selected by `STORAGE_BACKEND`."""
    if settings.STORAGE_BACKEND == "sql":
        return SqlStorage.from_url(
            settings.DATABASE_URL,
            echo=settings.DEBUG,
            default_timeout=settings.STORAGE_TIMEOUT_SECONDS,
        )
    return MemoryStorage(default_timeout=settings.STORAGE_TIMEOUT_SECONDS)


__all__ = ["MemoryStorage", "SqlStorage", "Storage", "UnitOfWork", "create_storage"]
