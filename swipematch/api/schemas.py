"""Request and response bodies that only exist at the HTTP boundary."""

from typing import List

from pydantic import BaseModel, Field


class CreditsResponse(BaseModel):
    credits: int


class UnreadCountResponse(BaseModel):
    count: int


class SuggestionRequest(BaseModel):
    recipient_name: str = Field(..., min_length=1, max_length=100)
    relationship_intent: str = Field(..., min_length=1, max_length=50)


class SuggestionsResponse(BaseModel):
    suggestions: List[str]


class ErrorResponse(BaseModel):
    message: str
    details: dict = Field(default_factory=dict)
