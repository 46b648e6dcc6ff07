"""Swipe models for the SwipeMatch service."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from swipematch.models.match import Match
from swipematch.models.user import User


class SwipeCreate(BaseModel):
    """A swipe request from one user towards another."""

    swiper_id: int = Field(..., description="ID of the user performing the swipe.")
    swiped_id: int = Field(..., description="ID of the user being swiped on.")
    liked: bool = Field(..., description="True for a right swipe (like), False for a left swipe.")

    @model_validator(mode="before")
    @classmethod
    def check_self_swipe(cls, values: Dict[str, Any]) -> Dict[str, Any]:
        if isinstance(values, dict):
            swiper_id = values.get("swiper_id")
            swiped_id = values.get("swiped_id")
            if swiper_id is not None and swiper_id == swiped_id:
                raise ValueError("Swiper and swiped user cannot be the same.")
        return values


class Swipe(BaseModel):
    """A recorded one-directional preference. Immutable once stored."""

    id: int
    swiper_id: int
    swiped_id: int
    liked: bool
    created_at: datetime

    model_config = ConfigDict(frozen=True)


class SwipeResult(BaseModel):
    """
    Outcome of a swipe submission.

    `match` and `matched_user` are only set when the swipe completed (or, on
    a repeated submission, had completed) a mutual like.
    """

    swipe: Swipe
    is_match: bool = False
    match: Optional[Match] = None
    matched_user: Optional[User] = None
    credits_remaining: int
