"""Popularity score rules."""

from swipematch.models.user import User
from swipematch.storage.base import UnitOfWork
from swipematch.utils.logging import get_logger

logger = get_logger(__name__)


class Reputation:
    """Adjusts a user's score when they receive a like or a dislike.

    Likes raise the score without an upper bound; dislikes lower it but never
    below `floor`.
    """

    def __init__(self, like_increment: float = 2.0, dislike_decrement: float = 1.0, floor: float = 10.0) -> None:
        self.like_increment = like_increment
        self.dislike_decrement = dislike_decrement
        self.floor = floor

    def on_liked(self, uow: UnitOfWork, user: User) -> float:
        user.likes_received += 1
        user.score = user.score + self.like_increment
        uow.save_user(user)
        logger.debug("Score raised", user_id=user.id, score=user.score)
        return user.score

    def on_disliked(self, uow: UnitOfWork, user: User) -> float:
        user.dislikes_received += 1
        user.score = max(user.score - self.dislike_decrement, self.floor)
        uow.save_user(user)
        logger.debug("Score lowered", user_id=user.id, score=user.score)
        return user.score
