"""
Pydantic schemas for Review endpoints.

tour_id and user_id are not writable on update: a review cannot be moved
to another tour or handed to another author.

Responses embed the author as {id, name}. No other user field is exposed.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class ReviewCreateRequest(BaseModel):
    """
    Request body for POST /reviews and POST /tours/{tour_id}/reviews.

    tour_id is required on /reviews and taken from the path when nested.
    The author is always the authenticated user.
    """
    review: str = Field(min_length=1, max_length=500)
    rating: int = Field(ge=1, le=5)
    tour_id: uuid.UUID | None = None


class ReviewUpdateRequest(BaseModel):
    """Request body for PATCH /reviews/{id}."""
    review: str | None = Field(default=None, min_length=1, max_length=500)
    rating: int | None = Field(default=None, ge=1, le=5)


class ReviewAuthor(BaseModel):
    id: uuid.UUID
    name: str

    model_config = {"from_attributes": True}


class ReviewResponse(BaseModel):
    """Public representation of a review, with its author's name."""
    id: uuid.UUID
    review: str
    rating: int
    tour_id: uuid.UUID
    user_id: uuid.UUID
    user: ReviewAuthor
    created_at: datetime

    model_config = {"from_attributes": True}
