"""
Tourbook Backend — Tour Route Handlers
=======================================

What:  /api/v1/tours CRUD, the top-5-cheap and tour-stats reports, and the
       nested /api/v1/tours/{tour_id}/reviews collection.
How:   Thin handlers: extract path/query/body, call tour_service or
       review_service, return the envelope they build.

Route order:
    /top-5-cheap and /tour-stats are declared before /{tour_id} so they are
    not parsed as ids.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tourbook.database import get_db_session
from tourbook.models.review import Review
from tourbook.schemas.common import ErrorResponse, ItemEnvelope, ListEnvelope
from tourbook.schemas.review import ReviewCreate
from tourbook.schemas.tour import TourCreate, TourUpdate
from tourbook.services.review_service import review_service
from tourbook.services.tour_service import tour_service

router = APIRouter(prefix="/api/v1/tours", tags=["Tours"])

_ERRORS = {
    400: {"description": "Invalid input", "model": ErrorResponse},
    404: {"description": "Tour not found", "model": ErrorResponse},
}


@router.get(
    "",
    response_model=ListEnvelope,
    summary="List tours",
    description=(
        "Supports filtering (duration=5, price[lt]=500), sort=price,-ratingsAverage, "
        "fields=name,price and page/limit pagination."
    ),
)
async def get_all_tours(request: Request, db: AsyncSession = Depends(get_db_session)):
    return await tour_service.get_all(db, request.query_params.multi_items())


@router.get(
    "/top-5-cheap",
    response_model=ListEnvelope,
    summary="Five best-rated, cheapest tours",
)
async def get_top_5_cheap(request: Request, db: AsyncSession = Depends(get_db_session)):
    params = tour_service.top_5_cheap_params(request.query_params.multi_items())
    return await tour_service.get_all(db, params)


@router.get("/tour-stats", summary="Aggregate statistics by difficulty")
async def get_tour_stats(db: AsyncSession = Depends(get_db_session)):
    """Counts, rating and price aggregates for tours rated 4.5 or higher."""
    return await tour_service.get_stats(db)


@router.post(
    "",
    response_model=ItemEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={400: _ERRORS[400]},
    summary="Create a tour",
)
async def create_tour(payload: TourCreate, db: AsyncSession = Depends(get_db_session)):
    return await tour_service.create_one(db, payload.model_dump())


@router.get("/{tour_id}", response_model=ItemEnvelope, responses=_ERRORS, summary="Get a tour")
async def get_tour(tour_id: UUID, db: AsyncSession = Depends(get_db_session)):
    return await tour_service.get_one(db, tour_id)


@router.patch("/{tour_id}", response_model=ItemEnvelope, responses=_ERRORS, summary="Update a tour")
async def update_tour(tour_id: UUID, payload: TourUpdate, db: AsyncSession = Depends(get_db_session)):
    return await tour_service.update_one(db, tour_id, payload.model_dump(exclude_unset=True))


@router.delete(
    "/{tour_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={404: _ERRORS[404]},
    summary="Delete a tour",
)
async def delete_tour(tour_id: UUID, db: AsyncSession = Depends(get_db_session)):
    await tour_service.delete_one(db, tour_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Nested reviews ────────────────────────────────────────────────────────

@router.get(
    "/{tour_id}/reviews",
    response_model=ListEnvelope,
    responses={404: _ERRORS[404]},
    summary="List the reviews of one tour",
)
async def get_tour_reviews(tour_id: UUID, request: Request, db: AsyncSession = Depends(get_db_session)):
    await tour_service.get_instance(db, tour_id)
    return await review_service.get_all(
        db, request.query_params.multi_items(), where=[Review.tour_id == tour_id]
    )


@router.post(
    "/{tour_id}/reviews",
    response_model=ItemEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
    summary="Review a tour",
)
async def create_tour_review(
    tour_id: UUID,
    payload: ReviewCreate,
    db: AsyncSession = Depends(get_db_session),
):
    """The tour in the path wins over any tourId in the body."""
    data = payload.model_dump()
    data["tour_id"] = tour_id
    return await review_service.create_one(db, data)
