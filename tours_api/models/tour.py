"""
Tour model — the parent resource that reviews roll up into.

ratings_average and ratings_quantity are derived fields. They are never
written through the API; rating_service recomputes them from the tour's
reviews after every review mutation.

Secret tours:
  Tours flagged secret_tour=True are excluded from every read by the
  visible_tours scope. They exist for private bookings and are only
  reachable by direct database access.

Reviews:
  Tour.reviews is read-only. It is loaded only when asked for (the
  single-tour endpoint), never on list reads.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, Float, Boolean, DateTime, Text, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tours_api.database import Base

# A tour with no reviews shows this average, both when it is created and
# after its last review is deleted.
DEFAULT_RATINGS_AVERAGE = 4.5

DIFFICULTIES = ("easy", "medium", "difficult")


class Tour(Base):
    __tablename__ = "tours"

    __table_args__ = (
        CheckConstraint("duration > 0", name="ck_tours_positive_duration"),
        CheckConstraint("max_group_size > 0", name="ck_tours_positive_group_size"),
        CheckConstraint("price > 0", name="ck_tours_positive_price"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(
        String(40),
        unique=True,
        nullable=False,
    )

    slug: Mapped[str] = mapped_column(
        String(60),
        nullable=False,
        index=True,
    )

    # Length in days
    duration: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    max_group_size: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    difficulty: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
    )

    ratings_average: Mapped[float] = mapped_column(
        Float,
        default=DEFAULT_RATINGS_AVERAGE,
        nullable=False,
    )

    ratings_quantity: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    price: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        index=True,
    )

    price_discount: Mapped[float | None] = mapped_column(
        Float,
        nullable=True,
    )

    summary: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    image_cover: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    secret_tour: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Relationships ---
    reviews: Mapped[list["Review"]] = relationship(
        order_by="Review.created_at",
        lazy="raise",
        viewonly=True,
    )


def visible_tours():
    """Default scope for every tour read: secret tours are hidden."""
    return Tour.secret_tour.is_(False)
