"""Services package for the SwipeMatch service."""

from typing import List, Optional

import sentry_sdk

from swipematch.config import Settings
from swipematch.models.match import MatchWithUser
from swipematch.models.swipe import SwipeResult
from swipematch.models.user import User
from swipematch.services.feed_ranker import FeedRanker
from swipematch.services.ledger import Ledger
from swipematch.services.match_engine import MatchEngine
from swipematch.services.message_service import MessageService
from swipematch.services.reputation import Reputation
from swipematch.services.suggestions import SuggestionProvider, TemplateSuggestionProvider
from swipematch.services.swipe_store import SwipeStore
from swipematch.services.user_service import UserService
from swipematch.storage import Storage, create_storage
from swipematch.utils.clock import Clock, utcnow
from swipematch.utils.errors import NotFoundError
from swipematch.utils.locks import user_lock_key
from swipematch.utils.logging import get_logger

logger = get_logger(__name__)


class SwipeMatchService:
    """
    Entry point used by the HTTP layer.

    Wires the ledger, reputation, swipe store, match engine and feed ranker
    around a single injected storage backend.
    """

    def __init__(
        self,
        storage: Storage,
        ledger: Ledger,
        reputation: Reputation,
        clock: Clock = utcnow,
        suggestions: Optional[SuggestionProvider] = None,
        initial_score: float = 100.0,
    ) -> None:
        self.storage = storage
        self.ledger = ledger
        self.reputation = reputation
        self.swipes = SwipeStore(clock)
        self.engine = MatchEngine(storage, ledger, reputation, self.swipes, clock)
        self.feed = FeedRanker(storage)
        self.users = UserService(storage, initial_score, ledger.daily_allowance, clock)
        self.messages = MessageService(storage, clock)
        self.suggestions: SuggestionProvider = suggestions or TemplateSuggestionProvider()

    def submit_swipe(self, swiper_id: int, swiped_id: int, liked: bool, timeout: Optional[float] = None) -> SwipeResult:
        return self.engine.submit_swipe(swiper_id, swiped_id, liked, timeout=timeout)

    def get_credits(self, user_id: int, timeout: Optional[float] = None) -> int:
        """
        Get the user's remaining credits, applying a due daily reset first.

        Raises:
            NotFoundError: If the user does not exist.
        """
        with self.storage.unit_of_work([user_lock_key(user_id)], timeout=timeout) as uow:
            uow.lock_users([user_id])
            user = uow.get_user(user_id)
            if user is None:
                raise NotFoundError(f"User not found: {user_id}", details={"user_id": user_id})
            return self.ledger.remaining_credits(uow, user)

    def reset_credits(self, user_id: int, credits: Optional[int] = None, timeout: Optional[float] = None) -> int:
        """Restore a user's credits outside the daily cycle."""
        with self.storage.unit_of_work([user_lock_key(user_id)], timeout=timeout) as uow:
            uow.lock_users([user_id])
            user = uow.get_user(user_id)
            if user is None:
                raise NotFoundError(f"User not found: {user_id}", details={"user_id": user_id})
            return self.ledger.reset_credits(uow, user, credits)

    def get_candidates(
        self, user_id: int, limit: Optional[int] = None, offset: int = 0, timeout: Optional[float] = None
    ) -> List[User]:
        return self.feed.candidates_for(user_id, limit=limit, offset=offset, timeout=timeout)

    def get_matches(self, user_id: int, timeout: Optional[float] = None) -> List[MatchWithUser]:
        """
        Get all matches of a user, each paired with the other participant.

        Raises:
            NotFoundError: If the user does not exist.
        """
        with sentry_sdk.start_span(op="match.list", name=str(user_id)):
            with self.storage.unit_of_work(timeout=timeout) as uow:
                if uow.get_user(user_id) is None:
                    raise NotFoundError(f"User not found: {user_id}", details={"user_id": user_id})
                views = []
                for match in uow.list_matches(user_id):
                    other = uow.get_user(match.other_user_id(user_id))
                    if other is not None:
                        views.append(MatchWithUser(match=match, user=other))
            return views

    def get_match(self, match_id: int, user_id: int, timeout: Optional[float] = None) -> MatchWithUser:
        """
        Get one match as seen by `user_id`.

        Raises:
            NotFoundError: If the match does not exist or `user_id` is not part of it.
        """
        with self.storage.unit_of_work(timeout=timeout) as uow:
            match = uow.get_match(match_id)
            if match is None or not match.involves(user_id):
                raise NotFoundError(f"Match not found: {match_id}", details={"match_id": match_id, "user_id": user_id})
            other = uow.get_user(match.other_user_id(user_id))
        if other is None:
            raise NotFoundError(f"Match not found: {match_id}", details={"match_id": match_id, "user_id": user_id})
        return MatchWithUser(match=match, user=other)


def build_service(
    settings: Settings,
    storage: Optional[Storage] = None,
    clock: Clock = utcnow,
    suggestions: Optional[SuggestionProvider] = None,
) -> SwipeMatchService:
    """Construct a `SwipeMatchService` from settings."""
    storage = storage or create_storage(settings)
    ledger = Ledger(settings.DAILY_CREDIT_ALLOWANCE, settings.credit_reset_interval, clock)
    reputation = Reputation(settings.SCORE_LIKE_INCREMENT, settings.SCORE_DISLIKE_DECREMENT, settings.SCORE_FLOOR)
    logger.debug(
        "Service built",
        storage=type(storage).__name__,
        daily_allowance=settings.DAILY_CREDIT_ALLOWANCE,
    )
    return SwipeMatchService(
        storage,
        ledger,
        reputation,
        clock=clock,
        suggestions=suggestions,
        initial_score=settings.SCORE_INITIAL,
    )


__all__ = [
    "FeedRanker",
    "Ledger",
    "MatchEngine",
    "MessageService",
    "Reputation",
    "SuggestionProvider",
    "SwipeMatchService",
    "SwipeStore",
    "TemplateSuggestionProvider",
    "UserService",
    "build_service",
]
