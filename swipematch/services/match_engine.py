"""Swipe processing and mutual-match detection."""

from typing import Optional

import sentry_sdk

from swipematch.models.match import Match
from swipematch.models.swipe import Swipe, SwipeResult
from swipematch.models.user import User
from swipematch.services.ledger import Ledger
from swipematch.services.reputation import Reputation
from swipematch.services.swipe_store import SwipeStore
from swipematch.storage.base import Storage, UnitOfWork
from swipematch.utils.clock import Clock, utcnow
from swipematch.utils.errors import ConflictError, NotFoundError, ValidationError
from swipematch.utils.locks import pair_lock_key, user_lock_key
from swipematch.utils.logging import get_logger

logger = get_logger(__name__)

# A conflict means another writer committed the same swipe or match first.
# Replaying once sees that committed row and returns it.
MAX_CONFLICT_RETRIES = 1


class MatchEngine:
    """
    Applies a swipe and creates a match on reciprocity.

    The whole sequence (credit spend, swipe record, score update, match
    creation) runs in one unit of work holding the locks of both users and of
    the normalized pair, so it either commits entirely or not at all, and
    reciprocal swipes from both sides are serialized.
    """

    def __init__(
        self,
        storage: Storage,
        ledger: Ledger,
        reputation: Reputation,
        swipes: SwipeStore,
        clock: Clock = utcnow,
    ) -> None:
        self._storage = storage
        self._ledger = ledger
        self._reputation = reputation
        self._swipes = swipes
        self._clock = clock

    def submit_swipe(
        self, swiper_id: int, swiped_id: int, liked: bool, timeout: Optional[float] = None
    ) -> SwipeResult:
        """
        Process a swipe from `swiper_id` on `swiped_id`.

        A repeated submission for the same ordered pair returns the stored
        outcome and has no further side effects.

        Args:
            swiper_id: The user swiping.
            swiped_id: The user being swiped on.
            liked: True for a like, False for a dislike.
            timeout: Seconds to wait for locks and storage.

        Returns:
            SwipeResult: The swipe, match details and the swiper's remaining credits.

        Raises:
            ValidationError: If a user swipes on themselves.
            NotFoundError: If either user does not exist.
            InsufficientCreditsError: If a like is attempted with no credits left.
            StorageUnavailableError: If storage or locks time out. Safe to retry.
        """
        if swiper_id == swiped_id:
            raise ValidationError("Cannot swipe on yourself", details={"user_id": swiper_id})

        with sentry_sdk.start_span(op="swipe.submit", name=f"{swiper_id} -> {swiped_id}") as span:
            span.set_data("liked", liked)
            attempt = 0
            while True:
                try:
                    result = self._process(swiper_id, swiped_id, liked, timeout)
                    break
                except ConflictError as e:
                    if attempt >= MAX_CONFLICT_RETRIES:
                        raise
                    attempt += 1
                    logger.info(
                        "Concurrent write detected, replaying swipe",
                        swiper_id=swiper_id,
                        swiped_id=swiped_id,
                        details=e.details,
                    )
            span.set_data("is_match", result.is_match)
            return result

    def _process(self, swiper_id: int, swiped_id: int, liked: bool, timeout: Optional[float]) -> SwipeResult:
        lock_keys = [user_lock_key(swiper_id), user_lock_key(swiped_id), pair_lock_key(swiper_id, swiped_id)]
        with self._storage.unit_of_work(lock_keys, timeout=timeout) as uow:
            uow.lock_users([swiper_id, swiped_id])
            swiper = self._require_user(uow, swiper_id)
            swiped = self._require_user(uow, swiped_id)

            existing = self._swipes.find(uow, swiper_id, swiped_id)
            if existing is not None:
                return self._replay(uow, existing, swiper, swiped)

            if liked:
                self._ledger.try_spend_credit(uow, swiper)

            swipe = self._swipes.record(uow, swiper_id, swiped_id, liked)

            if liked:
                self._reputation.on_liked(uow, swiped)
            else:
                self._reputation.on_disliked(uow, swiped)

            match = None
            if liked:
                reverse = self._swipes.find(uow, swiped_id, swiper_id)
                if reverse is not None and reverse.liked:
                    match = self._create_match_once(uow, swiper_id, swiped_id)

            credits = self._ledger.remaining_credits(uow, swiper)

        logger.info(
            "Swipe processed",
            swiper_id=swiper_id,
            swiped_id=swiped_id,
            liked=liked,
            is_match=match is not None,
            credits_remaining=credits,
        )
        return SwipeResult(
            swipe=swipe,
            is_match=match is not None,
            match=match,
            matched_user=swiped if match is not None else None,
            credits_remaining=credits,
        )

    def _require_user(self, uow: UnitOfWork, user_id: int) -> User:
        user = uow.get_user(user_id)
        if user is None:
            logger.warning("User not found", user_id=user_id)
            raise NotFoundError(f"User not found: {user_id}", details={"user_id": user_id})
        return user

    def _create_match_once(self, uow: UnitOfWork, swiper_id: int, swiped_id: int) -> Match:
        existing = uow.find_match(swiper_id, swiped_id)
        if existing is not None:
            return existing
        match = uow.insert_match(swiper_id, swiped_id, self._clock())
        logger.info("Match created", match_id=match.id, user1_id=match.user1_id, user2_id=match.user2_id)
        return match

    def _replay(self, uow: UnitOfWork, swipe: Swipe, swiper: User, swiped: User) -> SwipeResult:
        logger.info(
            "Duplicate swipe ignored",
            swiper_id=swipe.swiper_id,
            swiped_id=swipe.swiped_id,
            stored_liked=swipe.liked,
        )
        match = uow.find_match(swiper.id, swiped.id) if swipe.liked else None
        return SwipeResult(
            swipe=swipe,
            is_match=match is not None,
            match=match,
            matched_user=swiped if match is not None else None,
            credits_remaining=self._ledger.remaining_credits(uow, swiper),
        )
