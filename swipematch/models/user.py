"""User model for the SwipeMatch service."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from swipematch.utils.clock import utcnow


class UserCreate(BaseModel):
    """
    User registration payload.

    Contains only profile fields; score and credits are assigned by the
    service at registration time.
    """

    username: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=100)
    age: int
    bio: Optional[str] = None
    title: Optional[str] = Field(None, max_length=200)
    image: str = Field(..., min_length=1, max_length=500)
    distance: Optional[int] = None  # in kilometers
    tags: List[str] = Field(default_factory=list)

    @field_validator("age")
    @classmethod
    def validate_age(cls, v: int) -> int:
        """
        Validate user age.

        Args:
            v (int): Age value to validate.

        Returns:
            int: Validated age value.

        Raises:
            ValueError: If the user is under 18 or the age is implausible.
        """
        if v < 18 or v > 120:
            raise ValueError("Age must be between 18 and 120")
        return v

    @field_validator("distance")
    @classmethod
    def validate_distance(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError("Distance cannot be negative")
        return v

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: List[str]) -> List[str]:
        """
        Normalize profile tags.

        Trims whitespace and drops empty entries and duplicates, keeping the
        original order and casing of the first occurrence.
        """
        seen = set()
        tags = []
        for tag in v:
            cleaned = tag.strip()
            if cleaned and cleaned.lower() not in seen:
                seen.add(cleaned.lower())
                tags.append(cleaned)
        return tags


class User(BaseModel):
    """
    User model.

    Holds the public profile plus the ledger (`credits_remaining`,
    `last_credit_reset`) and reputation (`score`, like/dislike counters)
    state. The latter fields are only changed through the Ledger and
    Reputation services.
    """

    id: int
    username: str
    name: str
    age: int
    bio: Optional[str] = None
    title: Optional[str] = None
    image: str
    distance: Optional[int] = None
    tags: List[str] = Field(default_factory=list)
    score: float = 100.0
    likes_received: int = 0
    dislikes_received: int = 0
    credits_remaining: int = Field(default=0, ge=0)
    last_credit_reset: datetime = Field(default_factory=utcnow)
    created_at: datetime = Field(default_factory=utcnow)
