"""Models package for the SwipeMatch service."""

from swipematch.models.match import Match, MatchWithUser
from swipematch.models.message import Message, MessageCreate
from swipematch.models.swipe import Swipe, SwipeCreate, SwipeResult
from swipematch.models.user import User, UserCreate

__all__ = [
    "Match",
    "MatchWithUser",
    "Message",
    "MessageCreate",
    "Swipe",
    "SwipeCreate",
    "SwipeResult",
    "User",
    "UserCreate",
]
