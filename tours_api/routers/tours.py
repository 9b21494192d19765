"""
Tours router — tour CRUD and reviews nested under a tour.

Endpoints:
  GET    /tours                      — List tours (public; filter/sort/fields/paginate)
  GET    /tours/{tour_id}            — Get a tour and its reviews (public)
  POST   /tours                      — Create a tour        [admin, lead-guide]
  PATCH  /tours/{tour_id}            — Update a tour        [admin, lead-guide]
  DELETE /tours/{tour_id}            — Delete a tour        [admin, lead-guide]
  GET    /tours/{tour_id}/reviews    — List a tour's reviews [authenticated]
  POST   /tours/{tour_id}/reviews    — Review a tour        [user]

List query examples:
  /tours?difficulty=easy&price[lt]=1500
  /tours?sort=-ratings_average,price&fields=name,price,ratings_average
  /tours?page=2&limit=10
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
from tours_api.schemas.review import ReviewCreateRequest, ReviewResponse
from tours_api.schemas.tour import (
    TourCreateRequest,
    TourDetailResponse,
    TourResponse,
    TourUpdateRequest,
)
from tours_api.services import review_service, tour_service

router = APIRouter()

tour_managers = restrict_to(UserRole.ADMIN, UserRole.LEAD_GUIDE)


@router.get(
    "",
    response_model=ListEnvelope[dict[str, Any]],
    summary="List tours",
)
async def list_tours(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """
    List visible tours.

    Any query parameter other than page/sort/limit/fields is a filter:
    `field=value` or `field[gte|gt|lte|lt]=value`.
    """
    spec = parse_query_params(
        request.query_params, settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE
    )
    tours = await tour_service.list_tours(db, spec)
    data = [
        spec.project(TourResponse.model_validate(t).model_dump(mode="json"))
        for t in tours
    ]
    return ListEnvelope(results=len(data), data=data)


@router.get(
    "/{tour_id}",
    response_model=DataEnvelope[TourDetailResponse],
    summary="Get a tour with its reviews",
)
async def get_tour(
    tour_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    tour = await tour_service.get_tour(db, tour_id, with_reviews=True)
    return DataEnvelope(data=TourDetailResponse.model_validate(tour))


@router.post(
    "",
    response_model=DataEnvelope[TourResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a tour",
)
async def create_tour(
    request: TourCreateRequest,
    user: User = Depends(tour_managers),
    db: AsyncSession = Depends(get_db),
):
    tour = await tour_service.create_tour(db, request.model_dump())
    return DataEnvelope(data=TourResponse.model_validate(tour))


@router.patch(
    "/{tour_id}",
    response_model=DataEnvelope[TourResponse],
    summary="Update a tour",
)
async def update_tour(
    tour_id: uuid.UUID,
    request: TourUpdateRequest,
    user: User = Depends(tour_managers),
    db: AsyncSession = Depends(get_db),
):
    """Partial update. Ratings are derived from reviews and cannot be set."""
    tour = await tour_service.update_tour(
        db, tour_id, request.model_dump(exclude_unset=True)
    )
    return DataEnvelope(data=TourResponse.model_validate(tour))


@router.delete(
    "/{tour_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a tour",
)
async def delete_tour(
    tour_id: uuid.UUID,
    user: User = Depends(tour_managers),
    db: AsyncSession = Depends(get_db),
):
    await tour_service.delete_tour(db, tour_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Nested reviews
# ---------------------------------------------------------------------------

@router.get(
    "/{tour_id}/reviews",
    response_model=ListEnvelope[dict[str, Any]],
    summary="List a tour's reviews",
)
async def list_tour_reviews(
    tour_id: uuid.UUID,
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    spec = parse_query_params(
        request.query_params, settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE
    )
    reviews = await review_service.list_reviews(db, spec, tour_id=tour_id)
    data = [
        spec.project(ReviewResponse.model_validate(r).model_dump(mode="json"))
        for r in reviews
    ]
    return ListEnvelope(results=len(data), data=data)


@router.post(
    "/{tour_id}/reviews",
    response_model=DataEnvelope[ReviewResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Review a tour",
)
async def create_tour_review(
    tour_id: uuid.UUID,
    request: ReviewCreateRequest,
    user: User = Depends(restrict_to(UserRole.USER)),
    db: AsyncSession = Depends(get_db),
):
    """The tour comes from the path; the author is the authenticated user."""
    review = await review_service.create_review(
        db,
        author=user,
        tour_id=tour_id,
        review=request.review,
        rating=request.rating,
    )
    return DataEnvelope(data=ReviewResponse.model_validate(review))
