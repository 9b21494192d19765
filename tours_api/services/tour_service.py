"""
Tour service — tour CRUD on top of the generic resource handler.

Explicit steps around the generic handler:
  - The slug is derived from the name on create and whenever the name
    changes.
  - A price discount must stay below the (possibly updated) price.

Secret tours are hidden from every read by the visible_tours scope.
The single-tour read can also load the tour's reviews.
Deleting a tour also deletes its reviews.
"""

import re
import unicodedata
import uuid

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tours_api.exceptions import ValidationError
from tours_api.models.review import Review
from tours_api.models.tour import Tour, visible_tours
from tours_api.query import QuerySpec
from tours_api.schemas.tour import TourResponse
from tours_api.services.handler_factory import ResourceHandler, ResourceType

# Fields a PATCH may explicitly clear with null
NULLABLE_FIELDS = {"price_discount", "summary", "description"}


def slugify(value: str) -> str:
    """'The Forest Hiker' -> 'the-forest-hiker'."""
    normalized = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode()
    return re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")


def validate_tour(values: dict, existing: Tour | None) -> None:
    price = values.get("price", existing.price if existing else None)
    discount = values.get("price_discount", existing.price_discount if existing else None)
    if discount is not None and price is not None and discount >= price:
        raise ValidationError(
            f"Discount price ({discount}) should be below regular price"
        )


tours = ResourceHandler(ResourceType(
    model=Tour,
    name="Tour",
    public_fields=frozenset(TourResponse.model_fields),
    default_scope=visible_tours,
    validate=validate_tour,
    conflict_message="A tour with this name already exists",
))


async def create_tour(db: AsyncSession, values: dict) -> Tour:
    values = {**values, "name": values["name"].strip()}
    values["slug"] = slugify(values["name"])
    return await tours.create_one(db, values)


async def get_tour(
    db: AsyncSession,
    tour_id: uuid.UUID,
    with_reviews: bool = False,
) -> Tour:
    """Fetch a visible tour, optionally with its reviews and their authors."""
    load = (selectinload(Tour.reviews),) if with_reviews else ()
    return await tours.get_one(db, tour_id, load=load)


async def list_tours(db: AsyncSession, spec: QuerySpec) -> list[Tour]:
    return await tours.get_all(db, spec)


async def update_tour(db: AsyncSession, tour_id: uuid.UUID, changes: dict) -> Tour:
    changes = {
        field: value for field, value in changes.items()
        if value is not None or field in NULLABLE_FIELDS
    }
    if changes.get("name") is not None:
        changes = {**changes, "name": changes["name"].strip()}
        changes["slug"] = slugify(changes["name"])
    return await tours.update_one(db, tour_id, changes)


async def delete_tour(db: AsyncSession, tour_id: uuid.UUID) -> None:
    tour = await tours.get_one(db, tour_id)
    await db.execute(delete(Review).where(Review.tour_id == tour.id))
    await tours.delete_one(db, tour.id)
