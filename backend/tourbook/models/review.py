"""
Tourbook Backend — Review SQLAlchemy Model
===========================================

What:  ORM model representing the `reviews` table.
How:   A review belongs to one tour and one user. The (tour_id, user_id)
       unique constraint allows a single review per user per tour.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from tourbook.database import Base


class Review(Base):
    __tablename__ = "reviews"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    review: Mapped[str] = mapped_column(Text, nullable=False)

    # 1 to 5, validated by the request schema
    rating: Mapped[int] = mapped_column(Integer, nullable=False)

    tour_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tours.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("tour_id", "user_id", name="uq_reviews_tour_user"),
    )

    def __repr__(self) -> str:
        return f"<Review(id={self.id}, tour_id={self.tour_id}, rating={self.rating})>"
