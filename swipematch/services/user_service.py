"""User registration and lookup."""

from typing import List, Optional

import sentry_sdk

from swipematch.models.user import User, UserCreate
from swipematch.storage.base import Storage
from swipematch.utils.clock import Clock, utcnow
from swipematch.utils.errors import NotFoundError
from swipematch.utils.locks import username_lock_key
from swipematch.utils.logging import get_logger

logger = get_logger(__name__)


class UserService:
    """Creates users with their initial score and credit balance."""

    def __init__(self, storage: Storage, initial_score: float, daily_allowance: int, clock: Clock = utcnow) -> None:
        self._storage = storage
        self._initial_score = initial_score
        self._daily_allowance = daily_allowance
        self._clock = clock

    def create_user(self, data: UserCreate, timeout: Optional[float] = None) -> User:
        """Register a new user.

        Args:
            data: Profile fields.
            timeout: Seconds to wait for storage.

        Returns:
            The created user, with score and credits initialised.

        Raises:
            ConflictError: If the username is already taken.
        """
        with sentry_sdk.start_span(op="user.create", name=data.username):
            with self._storage.unit_of_work([username_lock_key(data.username)], timeout=timeout) as uow:
                user = uow.insert_user(
                    data,
                    score=self._initial_score,
                    credits_remaining=self._daily_allowance,
                    created_at=self._clock(),
                )
            logger.info("User created", user_id=user.id, username=user.username)
            return user

    def get_user(self, user_id: int, timeout: Optional[float] = None) -> User:
        """Get a user by ID.

        Raises:
            NotFoundError: If user not found
        """
        with self._storage.unit_of_work(timeout=timeout) as uow:
            user = uow.get_user(user_id)
        if user is None:
            logger.warning("User not found", user_id=user_id)
            raise NotFoundError(f"User not found: {user_id}", details={"user_id": user_id})
        return user

    def get_user_by_username(self, username: str, timeout: Optional[float] = None) -> Optional[User]:
        with self._storage.unit_of_work(timeout=timeout) as uow:
            return uow.get_user_by_username(username)

    def list_users(self, timeout: Optional[float] = None) -> List[User]:
        with self._storage.unit_of_work(timeout=timeout) as uow:
            users = uow.list_users()
        return sorted(users, key=lambda u: u.id)
