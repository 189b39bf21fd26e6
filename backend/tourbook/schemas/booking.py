"""Booking request/response schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from tourbook.schemas.common import CamelModel


class BookingCreate(CamelModel):
    tour_id: uuid.UUID
    user_id: uuid.UUID
    # Defaults to the tour's current price
    price: Optional[float] = Field(default=None, gt=0)
    paid: bool = True


class BookingUpdate(CamelModel):
    price: Optional[float] = Field(default=None, gt=0)
    paid: Optional[bool] = None


class BookingResponse(CamelModel):
    id: uuid.UUID
    tour_id: uuid.UUID
    user_id: uuid.UUID
    price: float
    paid: bool
    created_at: datetime
