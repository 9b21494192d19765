"""
Pydantic schemas for Tour endpoints.

ratings_average and ratings_quantity appear in responses but in no
request schema: they are derived from reviews and cannot be written
through the API. slug is likewise derived from the name.
"""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from tours_api.schemas.review import ReviewResponse

Difficulty = Literal["easy", "medium", "difficult"]


class TourCreateRequest(BaseModel):
    """Request body for POST /tours."""
    name: str = Field(min_length=10, max_length=40)
    duration: int = Field(gt=0)
    max_group_size: int = Field(gt=0)
    difficulty: Difficulty
    price: float = Field(gt=0)
    price_discount: float | None = Field(default=None, ge=0)
    summary: str | None = Field(default=None, max_length=255)
    description: str | None = None
    image_cover: str = Field(min_length=1, max_length=255)
    secret_tour: bool = False


class TourUpdateRequest(BaseModel):
    """Request body for PATCH /tours/{id}. Every field is optional."""
    name: str | None = Field(default=None, min_length=10, max_length=40)
    duration: int | None = Field(default=None, gt=0)
    max_group_size: int | None = Field(default=None, gt=0)
    difficulty: Difficulty | None = None
    price: float | None = Field(default=None, gt=0)
    price_discount: float | None = Field(default=None, ge=0)
    summary: str | None = Field(default=None, max_length=255)
    description: str | None = None
    image_cover: str | None = Field(default=None, min_length=1, max_length=255)
    secret_tour: bool | None = None


class TourResponse(BaseModel):
    """Public representation of a tour."""
    id: uuid.UUID
    name: str
    slug: str
    duration: int
    max_group_size: int
    difficulty: str
    ratings_average: float
    ratings_quantity: int
    price: float
    price_discount: float | None
    summary: str | None
    description: str | None
    image_cover: str
    created_at: datetime

    model_config = {"from_attributes": True}


class TourDetailResponse(TourResponse):
    """A single tour together with its reviews, oldest first."""
    reviews: list[ReviewResponse]
