"""In-memory storage backend, used by tests and local runs."""

import itertools
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Collection, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from swipematch.models.match import Match
from swipematch.models.message import Message, MessageCreate
from swipematch.models.swipe import Swipe
from swipematch.models.user import User, UserCreate
from swipematch.storage.base import Storage, UnitOfWork
from swipematch.utils.errors import ConflictError
from swipematch.utils.locks import KeyedLockRegistry, normalize_pair
from swipematch.utils.logging import get_logger

logger = get_logger(__name__)


class MemoryStorage(Storage):
    """
    Dictionary-backed storage.

    Writes are staged per unit of work and applied under a single state lock
    on commit, so readers never observe half of a swipe.
    """

    def __init__(self, locks: Optional[KeyedLockRegistry] = None, default_timeout: Optional[float] = None) -> None:
        self.locks = locks or KeyedLockRegistry()
        self.default_timeout = default_timeout
        self._state_lock = threading.RLock()
        self._ids = {name: itertools.count(1) for name in ("users", "swipes", "matches", "messages")}
        self.users: Dict[int, User] = {}
        self.swipes: Dict[Tuple[int, int], Swipe] = {}
        self.matches: Dict[int, Match] = {}
        self.messages: Dict[int, Message] = {}

    def next_id(self, table: str) -> int:
        with self._state_lock:
            return next(self._ids[table])

    @contextmanager
    def unit_of_work(self, lock_keys: Iterable[str] = (), timeout: Optional[float] = None) -> Iterator[UnitOfWork]:
        if timeout is None:
            timeout = self.default_timeout
        with self.locks.acquire(lock_keys, timeout):
            uow = MemoryUnitOfWork(self)
            yield uow
            uow.commit()


class MemoryUnitOfWork(UnitOfWork):
    """Staged view over a `MemoryStorage`."""

    def __init__(self, storage: MemoryStorage) -> None:
        self._storage = storage
        self._state = storage._state_lock
        self._users: Dict[int, User] = {}
        self._swipes: Dict[Tuple[int, int], Swipe] = {}
        self._matches: Dict[int, Match] = {}
        self._messages: Dict[int, Message] = {}

    def commit(self) -> None:
        with self._state:
            self._storage.users.update(self._users)
            self._storage.swipes.update(self._swipes)
            self._storage.matches.update(self._matches)
            self._storage.messages.update(self._messages)
        logger.debug(
            "Memory unit of work committed",
            users=len(self._users),
            swipes=len(self._swipes),
            matches=len(self._matches),
            messages=len(self._messages),
        )

    def _all_users(self) -> Dict[int, User]:
        with self._state:
            users = dict(self._storage.users)
        users.update(self._users)
        return users

    def _all_matches(self) -> List[Match]:
        with self._state:
            matches = dict(self._storage.matches)
        matches.update(self._matches)
        return list(matches.values())

    # Users
    def get_user(self, user_id: int) -> Optional[User]:
        user = self._all_users().get(user_id)
        return user.model_copy(deep=True) if user else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        for user in self._all_users().values():
            if user.username.lower() == username.lower():
                return user.model_copy(deep=True)
        return None

    def insert_user(
        self, data: UserCreate, *, score: float, credits_remaining: int, created_at: datetime
    ) -> User:
        if self.get_user_by_username(data.username):
            raise ConflictError(f"Username already taken: {data.username}", details={"username": data.username})
        user = User(
            id=self._storage.next_id("users"),
            **data.model_dump(),
            score=score,
            credits_remaining=credits_remaining,
            last_credit_reset=created_at,
            created_at=created_at,
        )
        self._users[user.id] = user
        return user.model_copy(deep=True)

    def save_user(self, user: User) -> User:
        current = self._all_users()[user.id]
        updated = current.model_copy(
            update={
                "score": user.score,
                "likes_received": user.likes_received,
                "dislikes_received": user.dislikes_received,
                "credits_remaining": user.credits_remaining,
                "last_credit_reset": user.last_credit_reset,
            }
        )
        self._users[user.id] = updated
        return updated.model_copy(deep=True)

    def list_users(self, exclude: Collection[int] = ()) -> List[User]:
        excluded = set(exclude)
        return [user.model_copy(deep=True) for uid, user in self._all_users().items() if uid not in excluded]

    # Swipes
    def find_swipe(self, swiper_id: int, swiped_id: int) -> Optional[Swipe]:
        key = (swiper_id, swiped_id)
        if key in self._swipes:
            return self._swipes[key]
        with self._state:
            return self._storage.swipes.get(key)

    def insert_swipe(self, swiper_id: int, swiped_id: int, liked: bool, created_at: datetime) -> Swipe:
        if self.find_swipe(swiper_id, swiped_id):
            raise ConflictError(
                "Swipe already recorded",
                details={"swiper_id": swiper_id, "swiped_id": swiped_id},
            )
        swipe = Swipe(
            id=self._storage.next_id("swipes"),
            swiper_id=swiper_id,
            swiped_id=swiped_id,
            liked=liked,
            created_at=created_at,
        )
        self._swipes[(swiper_id, swiped_id)] = swipe
        return swipe

    def swiped_ids(self, swiper_id: int) -> Set[int]:
        with self._state:
            keys = list(self._storage.swipes)
        keys.extend(self._swipes)
        return {swiped for swiper, swiped in keys if swiper == swiper_id}

    # Matches
    def find_match(self, user_a: int, user_b: int) -> Optional[Match]:
        pair = normalize_pair(user_a, user_b)
        for match in self._all_matches():
            if (match.user1_id, match.user2_id) == pair:
                return match
        return None

    def get_match(self, match_id: int) -> Optional[Match]:
        if match_id in self._matches:
            return self._matches[match_id]
        with self._state:
            return self._storage.matches.get(match_id)

    def insert_match(self, user_a: int, user_b: int, created_at: datetime) -> Match:
        if self.find_match(user_a, user_b):
            raise ConflictError("Match already exists", details={"user1_id": user_a, "user2_id": user_b})
        user1_id, user2_id = normalize_pair(user_a, user_b)
        match = Match(
            id=self._storage.next_id("matches"),
            user1_id=user1_id,
            user2_id=user2_id,
            created_at=created_at,
        )
        self._matches[match.id] = match
        return match

    def list_matches(self, user_id: int) -> List[Match]:
        matches = [match for match in self._all_matches() if match.involves(user_id)]
        return sorted(matches, key=lambda m: m.id)

    # Messages
    def insert_message(self, data: MessageCreate, created_at: datetime) -> Message:
        message = Message(id=self._storage.next_id("messages"), **data.model_dump(), created_at=created_at)
        self._messages[message.id] = message
        return message

    def _all_messages(self) -> List[Message]:
        with self._state:
            messages = dict(self._storage.messages)
        messages.update(self._messages)
        return list(messages.values())

    def list_messages(self, match_id: int) -> List[Message]:
        messages = [m for m in self._all_messages() if m.match_id == match_id]
        return sorted(messages, key=lambda m: (m.created_at, m.id))

    def count_unread(self, user_id: int) -> int:
        return sum(1 for m in self._all_messages() if m.receiver_id == user_id and not m.read)
