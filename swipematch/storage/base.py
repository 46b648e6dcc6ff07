"""Storage interface shared by the in-memory and SQL backends."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Collection, Iterable, List, Optional, Set

from swipematch.models.match import Match
from swipematch.models.message import Message, MessageCreate
from swipematch.models.swipe import Swipe
from swipematch.models.user import User, UserCreate


class UnitOfWork(ABC):
    """
    A storage transaction.

    All writes made through a unit of work become visible together when the
    enclosing `Storage.unit_of_work` block exits normally, and are discarded
    if it raises. Insert methods raise `ConflictError` when a unique key
    (username, ordered swipe pair, unordered match pair) is already taken.
    """

    def lock_users(self, user_ids: Iterable[int]) -> None:
        """Take row-level locks on the given users, if the backend supports them."""

    # Users
    @abstractmethod
    def get_user(self, user_id: int) -> Optional[User]: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]: ...

    @abstractmethod
    def insert_user(
        self, data: UserCreate, *, score: float, credits_remaining: int, created_at: datetime
    ) -> User: ...

    @abstractmethod
    def save_user(self, user: User) -> User:
        """Persist the ledger and reputation fields of `user`."""

    @abstractmethod
    def list_users(self, exclude: Collection[int] = ()) -> List[User]: ...

    # Swipes
    @abstractmethod
    def find_swipe(self, swiper_id: int, swiped_id: int) -> Optional[Swipe]: ...

    @abstractmethod
    def insert_swipe(self, swiper_id: int, swiped_id: int, liked: bool, created_at: datetime) -> Swipe: ...

    @abstractmethod
    def swiped_ids(self, swiper_id: int) -> Set[int]: ...

    # Matches
    @abstractmethod
    def find_match(self, user_a: int, user_b: int) -> Optional[Match]: ...

    @abstractmethod
    def get_match(self, match_id: int) -> Optional[Match]: ...

    @abstractmethod
    def insert_match(self, user_a: int, user_b: int, created_at: datetime) -> Match: ...

    @abstractmethod
    def list_matches(self, user_id: int) -> List[Match]: ...

    # Messages
    @abstractmethod
    def insert_message(self, data: MessageCreate, created_at: datetime) -> Message: ...

    @abstractmethod
    def list_messages(self, match_id: int) -> List[Message]: ...

    @abstractmethod
    def count_unread(self, user_id: int) -> int: ...


class Storage(ABC):
    """A storage backend. Services receive one by injection."""

    def init(self) -> None:
        """Prepare the backend for use (create tables, etc.)."""

    def close(self) -> None:
        """Release any resources held by the backend."""

    @abstractmethod
    def unit_of_work(
        self, lock_keys: Iterable[str] = (), timeout: Optional[float] = None
    ) -> AbstractContextManager[UnitOfWork]:
        """
        Open a unit of work.

        Args:
            lock_keys: Keys to hold exclusively for the whole block. Callers
                touching the same key are serialized.
            timeout: Seconds to wait for locks and storage before failing
                with `StorageUnavailableError`.
        """
