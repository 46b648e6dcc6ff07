"""Candidate feed ranking."""

from typing import List, Optional

import sentry_sdk

from swipematch.models.user import User
from swipematch.storage.base import Storage
from swipematch.utils.errors import NotFoundError
from swipematch.utils.logging import get_logger

logger = get_logger(__name__)


class FeedRanker:
    """Read-only projection of the users a given user has not yet swiped on."""

    def __init__(self, storage: Storage) -> None:
        self._storage = storage

    def candidates_for(
        self, user_id: int, limit: Optional[int] = None, offset: int = 0, timeout: Optional[float] = None
    ) -> List[User]:
        """
        Get the ranked candidate list for a user.

        Excludes the user and everyone they have swiped on, liked or not.
        Candidates are ordered by score, highest first, with ties broken by
        ascending id so pages stay stable for a fixed snapshot.

        Args:
            user_id (int): The user requesting candidates.
            limit (Optional[int]): Maximum number of candidates to return.
            offset (int): Number of ranked candidates to skip.
            timeout (Optional[float]): Seconds to wait for storage.

        Returns:
            List[User]: Ranked candidates.

        Raises:
            NotFoundError: If the user does not exist.
        """
        with sentry_sdk.start_span(op="feed.candidates", name=str(user_id)) as span:
            with self._storage.unit_of_work(timeout=timeout) as uow:
                if uow.get_user(user_id) is None:
                    raise NotFoundError(f"User not found: {user_id}", details={"user_id": user_id})
                excluded = uow.swiped_ids(user_id)
                excluded.add(user_id)
                users = uow.list_users(exclude=excluded)

            ranked = sorted(users, key=lambda u: (-u.score, u.id))
            end = None if limit is None else offset + limit
            page = ranked[offset:end]

            span.set_data("count", len(page))
            logger.debug("Candidates ranked", user_id=user_id, total=len(ranked), returned=len(page))
            return page
