"""Message models for the SwipeMatch service."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class MessageCreate(BaseModel):
    """A chat message to be sent within a match."""

    match_id: int
    sender_id: int
    receiver_id: int
    content: str = Field(..., max_length=2000)

    @field_validator("content")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message content cannot be empty")
        return v


class Message(BaseModel):
    """A stored chat message."""

    id: int
    match_id: int
    sender_id: int
    receiver_id: int
    content: str
    read: bool = False
    created_at: datetime
