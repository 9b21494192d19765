"""
Review service — review CRUD plus the rating rollup.

Every mutation follows the same explicit sequence:

    1. Mutate the review through the generic handler (flushes the write)
    2. Recompute the parent tour's rating aggregate from all its reviews

Both steps share the request's database transaction, and step 2 finishes
before the route returns, so the tour read right after a review change
already carries the new ratings.

Ownership:
  Reviews can be updated or deleted by their author or by an admin.
  Anyone else gets a 403 even if their role is otherwise allowed.
"""

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from tours_api.exceptions import AuthorizationError, ValidationError
from tours_api.models.review import Review
from tours_api.models.user import User, UserRole
from tours_api.query import QuerySpec
from tours_api.schemas.review import ReviewResponse
from tours_api.services import rating_service, tour_service
from tours_api.services.handler_factory import ResourceHandler, ResourceType

reviews = ResourceHandler(ResourceType(
    model=Review,
    name="Review",
    public_fields=frozenset(ReviewResponse.model_fields),
    conflict_message="You have already reviewed this tour",
))


def _ensure_can_modify(review: Review, user: User) -> None:
    if user.role != UserRole.ADMIN and review.user_id != user.id:
        raise AuthorizationError("You can only modify your own reviews")


async def create_review(
    db: AsyncSession,
    author: User,
    tour_id: uuid.UUID | None,
    review: str,
    rating: int,
) -> Review:
    """
    Create a review by `author` on a visible tour.

    Raises:
        ValidationError: If no tour id was given.
        NotFoundError: If the tour does not exist or is secret.
        ConflictError: If the author already reviewed this tour.
    """
    if tour_id is None:
        raise ValidationError("Review must belong to a tour!")
    tour = await tour_service.get_tour(db, tour_id)

    created = await reviews.create_one(db, {
        "review": review,
        "rating": rating,
        "tour_id": tour.id,
        "user_id": author.id,
    })
    await rating_service.recalculate_tour_ratings(db, tour.id)
    await db.refresh(created, ["user"])
    return created


async def get_review(db: AsyncSession, review_id: uuid.UUID) -> Review:
    return await reviews.get_one(db, review_id)


async def list_reviews(
    db: AsyncSession,
    spec: QuerySpec,
    tour_id: uuid.UUID | None = None,
) -> list[Review]:
    """List reviews, optionally only those of one tour."""
    if tour_id is not None:
        await tour_service.get_tour(db, tour_id)
        return await reviews.get_all(db, spec, scope={"tour_id": tour_id})
    return await reviews.get_all(db, spec)


async def update_review(
    db: AsyncSession,
    review_id: uuid.UUID,
    user: User,
    changes: dict,
) -> Review:
    existing = await reviews.get_one(db, review_id)
    _ensure_can_modify(existing, user)

    changes = {field: value for field, value in changes.items() if value is not None}
    updated = await reviews.update_one(db, review_id, changes)
    await rating_service.recalculate_tour_ratings(db, updated.tour_id)
    return updated


async def delete_review(
    db: AsyncSession,
    review_id: uuid.UUID,
    user: User,
) -> None:
    existing = await reviews.get_one(db, review_id)
    _ensure_can_modify(existing, user)

    deleted = await reviews.delete_one(db, review_id)
    await rating_service.recalculate_tour_ratings(db, deleted.tour_id)
