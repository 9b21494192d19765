"""
Reviews router — review CRUD. All endpoints require authentication.

Endpoints:
  GET    /reviews               — List reviews (filter/sort/fields/paginate)
  GET    /reviews/{review_id}   — Get a review
  POST   /reviews               — Create a review (body carries tour_id)  [user]
  PATCH  /reviews/{review_id}   — Update own review (admins: any)         [user, admin]
  DELETE /reviews/{review_id}   — Delete own review (admins: any)         [user, admin]

Every create/update/delete recomputes the parent tour's ratings before
the response is sent.
"""

import uuid
from typing import Any

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tours_api.config import settings
from tours_api.database import get_db
from tours_api.dependencies import get_current_user, restrict_to
from tours_api.models.user import User, UserRole
from tours_api.query import parse_query_params
from tours_api.schemas.common import DataEnvelope, ListEnvelope
from tours_api.schemas.review import ReviewCreateRequest, ReviewResponse, ReviewUpdateRequest
from tours_api.services import review_service

router = APIRouter()

review_editors = restrict_to(UserRole.USER, UserRole.ADMIN)


@router.get(
    "",
    response_model=ListEnvelope[dict[str, Any]],
    summary="List reviews",
)
async def list_reviews(
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    spec = parse_query_params(
        request.query_params, settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE
    )
    reviews = await review_service.list_reviews(db, spec)
    data = [
        spec.project(ReviewResponse.model_validate(r).model_dump(mode="json"))
        for r in reviews
    ]
    return ListEnvelope(results=len(data), data=data)


@router.get(
    "/{review_id}",
    response_model=DataEnvelope[ReviewResponse],
    summary="Get a review",
)
async def get_review(
    review_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    review = await review_service.get_review(db, review_id)
    return DataEnvelope(data=ReviewResponse.model_validate(review))


@router.post(
    "",
    response_model=DataEnvelope[ReviewResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a review",
)
async def create_review(
    request: ReviewCreateRequest,
    user: User = Depends(restrict_to(UserRole.USER)),
    db: AsyncSession = Depends(get_db),
):
    """One review per user per tour; a second attempt returns 409."""
    review = await review_service.create_review(
        db,
        author=user,
        tour_id=request.tour_id,
        review=request.review,
        rating=request.rating,
    )
    return DataEnvelope(data=ReviewResponse.model_validate(review))


@router.patch(
    "/{review_id}",
    response_model=DataEnvelope[ReviewResponse],
    summary="Update a review",
)
async def update_review(
    review_id: uuid.UUID,
    request: ReviewUpdateRequest,
    user: User = Depends(review_editors),
    db: AsyncSession = Depends(get_db),
):
    review = await review_service.update_review(
        db, review_id, user, request.model_dump(exclude_unset=True)
    )
    return DataEnvelope(data=ReviewResponse.model_validate(review))


@router.delete(
    "/{review_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a review",
)
async def delete_review(
    review_id: uuid.UUID,
    user: User = Depends(review_editors),
    db: AsyncSession = Depends(get_db),
):
    await review_service.delete_review(db, review_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
