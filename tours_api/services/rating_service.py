"""
Rating service — keeps Tour.ratings_average / ratings_quantity in sync.

Called by review_service after every review create, update and delete,
inside the same database transaction and before the response is built,
so the next read of the tour already sees the new aggregate.

The aggregate is always recomputed from a full COUNT/AVG over the tour's
current reviews, never adjusted incrementally. Two concurrent mutations
on reviews of the same tour may both recompute, but whichever runs last
reads the final set of reviews, so the stored values converge.
"""

import logging
import uuid

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tours_api.models.review import Review
from tours_api.models.tour import DEFAULT_RATINGS_AVERAGE, Tour

logger = logging.getLogger(__name__)


async def recalculate_tour_ratings(
    db: AsyncSession,
    tour_id: uuid.UUID,
) -> tuple[float, int]:
    """
    Recompute and store the rating aggregate of one tour.

    With no reviews left, the tour goes back to the values a new tour
    starts with: DEFAULT_RATINGS_AVERAGE and a quantity of 0.

    Returns:
        Tuple of (ratings_average, ratings_quantity) that was written.
    """
    result = await db.execute(
        select(func.count(Review.id), func.avg(Review.rating))
        .where(Review.tour_id == tour_id)
    )
    quantity, average = result.one()

    if quantity:
        ratings_average = round(float(average), 1)
    else:
        ratings_average = DEFAULT_RATINGS_AVERAGE

    # One UPDATE statement writes both fields together.
    # synchronize_session="fetch" refreshes a Tour already loaded in this
    # session, so a subsequent get_one() returns the new values.
    await db.execute(
        update(Tour)
        .where(Tour.id == tour_id)
        .values(ratings_average=ratings_average, ratings_quantity=quantity)
        .execution_options(synchronize_session="fetch")
    )
    logger.debug(
        "Tour %s ratings recalculated: average=%s quantity=%s",
        tour_id, ratings_average, quantity,
    )
    return ratings_average, quantity
