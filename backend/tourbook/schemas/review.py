"""Review request/response schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from tourbook.schemas.common import CamelModel


class ReviewCreate(CamelModel):
    review: str = Field(min_length=1, max_length=2000)
    rating: int = Field(ge=1, le=5)
    # Optional here because the nested route takes the tour from the path
    tour_id: Optional[uuid.UUID] = None
    user_id: uuid.UUID


class ReviewUpdate(CamelModel):
    review: Optional[str] = Field(default=None, min_length=1, max_length=2000)
    rating: Optional[int] = Field(default=None, ge=1, le=5)


class ReviewResponse(CamelModel):
    id: uuid.UUID
    review: str
    rating: int
    tour_id: uuid.UUID
    user_id: uuid.UUID
    created_at: datetime
