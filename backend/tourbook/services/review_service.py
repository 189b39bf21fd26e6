"""
Tourbook Backend — Review Service
==================================

What:  Review CRUD that keeps Tour.ratings_average / ratings_quantity in sync.
How:   after_change() recomputes the aggregates for the review's tour inside
       the same transaction as the write, for create, update and delete.

Aggregate rules:
    - ratings_quantity = number of reviews for the tour
    - ratings_average  = mean rating rounded to one decimal (4.666 → 4.7)
    - no reviews left  → quantity 0, average back to the 4.5 default

A user can review a tour once; a second review is a ConflictError (400).
"""

import logging
from typing import Any, Dict
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tourbook.exceptions import ValidationError
from tourbook.models.review import Review
from tourbook.models.tour import Tour
from tourbook.schemas.review import ReviewResponse
from tourbook.services.crud_service import CrudService
from tourbook.services.tour_service import tour_service
from tourbook.services.user_service import user_service

logger = logging.getLogger(__name__)

DEFAULT_RATINGS_AVERAGE = 4.5


class ReviewService(CrudService[Review]):
    def __init__(self):
        super().__init__(Review, ReviewResponse, "review", filterable=("rating", "tourId", "userId"))

    async def before_create(self, db: AsyncSession, data: Dict[str, Any]) -> Dict[str, Any]:
        if data.get("tour_id") is None:
            raise ValidationError(message="Review must belong to a tour.", field="tourId")
        await tour_service.get_instance(db, data["tour_id"])
        await user_service.get_instance(db, data["user_id"])
        return data

    async def after_change(self, db: AsyncSession, review: Review) -> None:
        await self.calc_average_ratings(db, review.tour_id)

    async def calc_average_ratings(self, db: AsyncSession, tour_id: UUID) -> None:
        result = await db.execute(
            select(func.count(Review.id), func.avg(Review.rating)).where(Review.tour_id == tour_id)
        )
        quantity, average = result.one()

        tour = await db.get(Tour, tour_id)
        if tour is None:
            return

        if quantity:
            tour.ratings_quantity = quantity
            tour.ratings_average = round(float(average), 1)
        else:
            tour.ratings_quantity = 0
            tour.ratings_average = DEFAULT_RATINGS_AVERAGE
        await db.flush()
        logger.debug(
            "Tour %s ratings: %.1f from %d reviews",
            tour_id, tour.ratings_average, tour.ratings_quantity,
        )


review_service = ReviewService()
