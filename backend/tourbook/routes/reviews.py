"""
Tourbook Backend — Review Route Handlers
=========================================

What:  /api/v1/reviews CRUD. Reviews for a single tour are also reachable
       through /api/v1/tours/{tour_id}/reviews (see tours.py).

Every write recalculates the reviewed tour's ratingsAverage and
ratingsQuantity before the response is sent.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tourbook.database import get_db_session
from tourbook.schemas.common import ErrorResponse, ItemEnvelope, ListEnvelope
from tourbook.schemas.review import ReviewCreate, ReviewUpdate
from tourbook.services.review_service import review_service

router = APIRouter(prefix="/api/v1/reviews", tags=["Reviews"])

_ERRORS = {
    400: {"description": "Invalid input or duplicate review", "model": ErrorResponse},
    404: {"description": "Review, tour or user not found", "model": ErrorResponse},
}


@router.get("", response_model=ListEnvelope, summary="List reviews")
async def get_all_reviews(request: Request, db: AsyncSession = Depends(get_db_session)):
    return await review_service.get_all(db, request.query_params.multi_items())


@router.post(
    "",
    response_model=ItemEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
    summary="Create a review",
)
async def create_review(payload: ReviewCreate, db: AsyncSession = Depends(get_db_session)):
    return await review_service.create_one(db, payload.model_dump())


@router.get("/{review_id}", response_model=ItemEnvelope, responses=_ERRORS, summary="Get a review")
async def get_review(review_id: UUID, db: AsyncSession = Depends(get_db_session)):
    return await review_service.get_one(db, review_id)


@router.patch("/{review_id}", response_model=ItemEnvelope, responses=_ERRORS, summary="Update a review")
async def update_review(review_id: UUID, payload: ReviewUpdate, db: AsyncSession = Depends(get_db_session)):
    return await review_service.update_one(db, review_id, payload.model_dump(exclude_unset=True))


@router.delete(
    "/{review_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={404: _ERRORS[404]},
    summary="Delete a review",
)
async def delete_review(review_id: UUID, db: AsyncSession = Depends(get_db_session)):
    await review_service.delete_one(db, review_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
