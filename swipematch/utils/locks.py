"""Per-key locking used to serialize swipes on the same users and pair."""

import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from swipematch.utils.errors import StorageUnavailableError
from swipematch.utils.logging import get_logger

logger = get_logger(__name__)


def normalize_pair(user_a: int, user_b: int) -> Tuple[int, int]:
    """Return the unordered pair as (lower id, higher id)."""
    return (user_a, user_b) if user_a <= user_b else (user_b, user_a)


def user_lock_key(user_id: int) -> str:
    return f"user:{user_id}"


def pair_lock_key(user_a: int, user_b: int) -> str:
    low, high = normalize_pair(user_a, user_b)
    return f"pair:{low}:{high}"


def username_lock_key(username: str) -> str:
    return f"username:{username.lower()}"


@dataclass
class _LockEntry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    refs: int = 0


class KeyedLockRegistry:
    """
    Registry of mutexes indexed by string key.

    Entries are created on first use and dropped once no caller holds or
    waits on them. `acquire` takes every requested key in sorted order, so two
    callers asking for overlapping key sets can never deadlock.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: Dict[str, _LockEntry] = {}

    def _checkout(self, key: str) -> _LockEntry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _LockEntry()
            entry.refs += 1
            return entry

    def _checkin(self, key: str, entry: _LockEntry) -> None:
        with self._guard:
            entry.refs -= 1
            if entry.refs == 0 and self._entries.get(key) is entry:
                del self._entries[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    @contextmanager
    def acquire(self, keys: Iterable[str], timeout: Optional[float] = None) -> Iterator[None]:
        """
        Hold the locks for all `keys` for the duration of the block.

        Args:
            keys: Lock keys; duplicates are ignored.
            timeout: Seconds to wait for all locks in total. None waits forever.

        Raises:
            StorageUnavailableError: If the locks are not obtained within `timeout`.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        held: List[Tuple[str, _LockEntry]] = []
        try:
            for key in sorted(set(keys)):
                entry = self._checkout(key)
                if deadline is None:
                    acquired = entry.lock.acquire()
                else:
                    remaining = deadline - time.monotonic()
                    if remaining > 0:
                        acquired = entry.lock.acquire(timeout=remaining)
                    else:
                        acquired = entry.lock.acquire(blocking=False)
                if not acquired:
                    self._checkin(key, entry)
                    logger.warning("Lock wait timed out", key=key, timeout=timeout)
                    raise StorageUnavailableError(
                        "Timed out waiting for storage lock",
                        details={"key": key, "timeout": timeout},
                    )
                held.append((key, entry))
            yield
        finally:
            for key, entry in reversed(held):
                entry.lock.release()
                self._checkin(key, entry)
