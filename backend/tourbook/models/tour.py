"""
Tourbook Backend — Tour SQLAlchemy Model
=========================================

What:  ORM model representing the `tours` table.
Who:   Used by the tours/reviews/bookings services and by Alembic.

Table Design:
    - UUID primary key, generated in Python so SQLite (tests) and PostgreSQL
      behave the same
    - name is unique; slug is derived from it by the tour service
    - ratings_average / ratings_quantity are denormalized aggregates kept in
      sync by the review service whenever a review changes
    - images and start_dates are JSON arrays (small, always read with the tour)
"""

import uuid
from datetime import datetime, timezone
from typing import List

from sqlalchemy import JSON, DateTime, Float, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from tourbook.database import Base


class Tour(Base):
    """A bookable tour."""

    __tablename__ = "tours"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(40), nullable=False, unique=True)
    slug: Mapped[str] = mapped_column(String(64), nullable=False)

    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    max_group_size: Mapped[int] = mapped_column(Integer, nullable=False)

    # Values: easy, medium, difficult
    difficulty: Mapped[str] = mapped_column(String(20), nullable=False)

    ratings_average: Mapped[float] = mapped_column(Float, nullable=False, default=4.5)
    ratings_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    price: Mapped[float] = mapped_column(Float, nullable=False)
    price_discount: Mapped[float | None] = mapped_column(Float, nullable=True)

    summary: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    image_cover: Mapped[str] = mapped_column(String(255), nullable=False)
    images: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    start_dates: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # Price filters and sorts are the most common list queries
    __table_args__ = (
        Index("idx_tours_price_ratings", "price", ratings_average.desc()),
        Index("idx_tours_slug", "slug"),
    )

    def __repr__(self) -> str:
        return f"<Tour(id={self.id}, name='{self.name}')>"
