"""Daily credit ledger for positive swipes."""

from datetime import timedelta
from typing import Optional

from swipematch.models.user import User
from swipematch.storage.base import UnitOfWork
from swipematch.utils.clock import Clock, utcnow
from swipematch.utils.errors import InsufficientCreditsError
from swipematch.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_RESET_INTERVAL = timedelta(hours=24)


class Ledger:
    """
    Credit allowance per user.

    Every read or spend first applies a due reset: once `reset_interval` has
    passed since `last_credit_reset`, the balance is restored to
    `daily_allowance`. Callers must hold the user's lock through the unit of
    work so concurrent spends are linearized.
    """

    def __init__(
        self,
        daily_allowance: int,
        reset_interval: timedelta = DEFAULT_RESET_INTERVAL,
        clock: Clock = utcnow,
    ) -> None:
        self.daily_allowance = daily_allowance
        self.reset_interval = reset_interval
        self._clock = clock

    def reset_if_due(self, user: User) -> bool:
        """
        Apply a pending daily reset to `user` in place.

        Returns:
            bool: True if the balance was reset.
        """
        now = self._clock()
        if now - user.last_credit_reset < self.reset_interval:
            return False
        logger.debug(
            "Daily credits reset",
            user_id=user.id,
            previous=user.credits_remaining,
            allowance=self.daily_allowance,
        )
        user.credits_remaining = self.daily_allowance
        user.last_credit_reset = now
        return True

    def remaining_credits(self, uow: UnitOfWork, user: User) -> int:
        """Return the user's balance after applying any due reset."""
        if self.reset_if_due(user):
            uow.save_user(user)
        return user.credits_remaining

    def try_spend_credit(self, uow: UnitOfWork, user: User) -> int:
        """
        Spend one credit.

        Args:
            uow: Open unit of work holding the user's lock.
            user: The spender; updated in place.

        Returns:
            int: The balance after the spend.

        Raises:
            InsufficientCreditsError: If no credit remains after the reset check.
        """
        self.reset_if_due(user)
        if user.credits_remaining <= 0:
            logger.info("Credit spend rejected", user_id=user.id)
            raise InsufficientCreditsError(
                "Not enough credits to like a profile",
                details={"user_id": user.id, "credits_remaining": 0},
            )
        user.credits_remaining -= 1
        uow.save_user(user)
        return user.credits_remaining

    def reset_credits(self, uow: UnitOfWork, user: User, credits: Optional[int] = None) -> int:
        """Force a reset to `credits` (the daily allowance by default)."""
        user.credits_remaining = self.daily_allowance if credits is None else max(credits, 0)
        user.last_credit_reset = self._clock()
        uow.save_user(user)
        logger.info("Credits reset", user_id=user.id, credits=user.credits_remaining)
        return user.credits_remaining
