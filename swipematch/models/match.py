"""Match model for the SwipeMatch service."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, model_validator

from swipematch.models.user import User


class Match(BaseModel):
    """
    Match model.

    A mutual like between two users. The pair is stored normalized so that
    `user1_id` is always the lower id.
    """

    id: int
    user1_id: int
    user2_id: int
    created_at: datetime

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_normalized(self) -> "Match":
        if self.user1_id >= self.user2_id:
            raise ValueError("Match pair must be stored as (lower id, higher id)")
        return self

    def other_user_id(self, user_id: int) -> int:
        """Return the id of the counterpart of `user_id` in this match."""
        if user_id == self.user1_id:
            return self.user2_id
        if user_id == self.user2_id:
            return self.user1_id
        raise ValueError(f"User {user_id} is not part of match {self.id}")

    def involves(self, user_id: int) -> bool:
        return user_id in (self.user1_id, self.user2_id)


class MatchWithUser(BaseModel):
    """
    Match view model.

    Pairs a match with the profile of the other participant, as seen by the
    requesting user.
    """

    match: Match
    user: User
