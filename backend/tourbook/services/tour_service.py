"""
Tourbook Backend — Tour Service
================================

What:  Tour CRUD plus the two read-only reports exposed under /api/v1/tours.
How:   CrudService subclass. Adds:
       - slug derived from the name on create and on rename
       - priceDiscount checked against the stored price on PATCH
       - top_5_cheap_params(): query preset for GET /top-5-cheap
       - get_stats(): per-difficulty aggregates for tours rated 4.5 and up
"""

import logging
import re
import unicodedata
from typing import Any, Dict, List, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tourbook.exceptions import DatabaseError, NotFoundError, ValidationError
from tourbook.models.tour import Tour
from tourbook.schemas.tour import TourResponse, TourStats
from tourbook.services.crud_service import CrudService

logger = logging.getLogger(__name__)

TOUR_FILTERABLE = (
    "name",
    "slug",
    "duration",
    "maxGroupSize",
    "difficulty",
    "ratingsAverage",
    "ratingsQuantity",
    "price",
    "priceDiscount",
)

TOP_CHEAP_PRESET = (
    ("limit", "5"),
    ("sort", "-ratingsAverage,price"),
    ("fields", "name,price,ratingsAverage,summary,difficulty"),
)

STATS_MIN_RATING = 4.5

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    """'The Forest Hiker' → 'the-forest-hiker'."""
    normalized = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    return _NON_SLUG_CHARS.sub("-", normalized.lower()).strip("-")


class TourService(CrudService[Tour]):
    def __init__(self):
        super().__init__(Tour, TourResponse, "tour", filterable=TOUR_FILTERABLE)

    async def before_create(self, db: AsyncSession, data: Dict[str, Any]) -> Dict[str, Any]:
        data["slug"] = slugify(data["name"])
        return data

    async def before_update(self, db: AsyncSession, tour: Tour, data: Dict[str, Any]) -> Dict[str, Any]:
        if data.get("name"):
            data["slug"] = slugify(data["name"])

        price = data.get("price", tour.price)
        discount = data.get("price_discount", tour.price_discount)
        if discount is not None and price is not None and discount >= price:
            raise ValidationError(
                message="Discount price should be below regular price",
                field="priceDiscount",
                context={"price": price, "price_discount": discount},
            )
        return data

    async def get_by_slug(self, db: AsyncSession, slug: str) -> Tour:
        result = await db.execute(select(Tour).where(Tour.slug == slug))
        tour = result.scalars().first()
        if tour is None:
            raise NotFoundError(
                resource="tour",
                message=f"There is no tour with the name '{slug}'.",
                context={"slug": slug},
            )
        return tour

    @staticmethod
    def top_5_cheap_params(params: Sequence[Tuple[str, str]]) -> List[Tuple[str, str]]:
        """Caller filters are kept; the preset fixes limit, sort and fields."""
        preset_keys = {key for key, _ in TOP_CHEAP_PRESET}
        return [(k, v) for k, v in params if k not in preset_keys] + list(TOP_CHEAP_PRESET)

    async def get_stats(self, db: AsyncSession) -> Dict[str, Any]:
        statement = (
            select(
                Tour.difficulty,
                func.count(Tour.id),
                func.sum(Tour.ratings_quantity),
                func.avg(Tour.ratings_average),
                func.avg(Tour.price),
                func.min(Tour.price),
                func.max(Tour.price),
            )
            .where(Tour.ratings_average >= STATS_MIN_RATING)
            .group_by(Tour.difficulty)
            .order_by(func.avg(Tour.price))
        )
        try:
            rows = (await db.execute(statement)).all()
        except SQLAlchemyError as e:
            logger.error("Database error computing tour stats: %s", e, exc_info=True)
            raise DatabaseError(
                message="Could not compute tour statistics. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

        stats = [
            TourStats(
                difficulty=difficulty,
                num_tours=num_tours,
                num_ratings=num_ratings or 0,
                avg_rating=round(float(avg_rating), 2),
                avg_price=round(float(avg_price), 2),
                min_price=min_price,
                max_price=max_price,
            ).model_dump(by_alias=True)
            for difficulty, num_tours, num_ratings, avg_rating, avg_price, min_price, max_price in rows
        ]
        return {"status": "success", "data": {"stats": stats}}


tour_service = TourService()
