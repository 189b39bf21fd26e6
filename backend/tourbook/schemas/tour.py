"""
Tourbook Backend — Tour Request/Response Schemas
=================================================

What:  Pydantic models defining the tours API contract.
How:   TourCreate validates POST bodies, TourUpdate validates PATCH bodies
       (every field optional, only sent fields are applied), TourResponse is
       what the API returns.

Validation rules:
    - name: 10 to 40 characters
    - difficulty: easy, medium or difficult
    - priceDiscount: must be below price (checked here when both are sent,
      and by the tour service against the stored price on PATCH)
"""

import uuid
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field, model_validator

from tourbook.schemas.common import CamelModel

Difficulty = Literal["easy", "medium", "difficult"]


class TourCreate(CamelModel):
    name: str = Field(min_length=10, max_length=40, description="Unique tour name")
    duration: int = Field(gt=0, description="Duration in days")
    max_group_size: int = Field(gt=0, description="Maximum travellers per group")
    difficulty: Difficulty
    price: float = Field(gt=0)
    price_discount: Optional[float] = Field(default=None, ge=0)
    summary: str = Field(min_length=1, max_length=500)
    description: Optional[str] = None
    image_cover: str = Field(min_length=1, max_length=255)
    images: List[str] = Field(default_factory=list)
    start_dates: List[str] = Field(default_factory=list, description="ISO 8601 start dates")

    @model_validator(mode="after")
    def check_discount(self) -> "TourCreate":
        if self.price_discount is not None and self.price_discount >= self.price:
            raise ValueError("Discount price should be below regular price")
        return self


class TourUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=10, max_length=40)
    duration: Optional[int] = Field(default=None, gt=0)
    max_group_size: Optional[int] = Field(default=None, gt=0)
    difficulty: Optional[Difficulty] = None
    price: Optional[float] = Field(default=None, gt=0)
    price_discount: Optional[float] = Field(default=None, ge=0)
    summary: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = None
    image_cover: Optional[str] = Field(default=None, min_length=1, max_length=255)
    images: Optional[List[str]] = None
    start_dates: Optional[List[str]] = None

    @model_validator(mode="after")
    def check_discount(self) -> "TourUpdate":
        if (
            self.price is not None
            and self.price_discount is not None
            and self.price_discount >= self.price
        ):
            raise ValueError("Discount price should be below regular price")
        return self


class TourResponse(CamelModel):
    id: uuid.UUID
    name: str
    slug: str
    duration: int
    max_group_size: int
    difficulty: str
    ratings_average: float
    ratings_quantity: int
    price: float
    price_discount: Optional[float] = None
    summary: str
    description: Optional[str] = None
    image_cover: str
    images: List[str]
    start_dates: List[str]
    created_at: datetime


class TourStats(CamelModel):
    """One row of GET /api/v1/tours/tour-stats, grouped by difficulty."""
    difficulty: str
    num_tours: int
    num_ratings: int
    avg_rating: float
    avg_price: float
    min_price: float
    max_price: float
