"""/api/v1/bookings CRUD. Payment processing is out of scope; `paid` is a plain flag."""

from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tourbook.database import get_db_session
from tourbook.schemas.common import ErrorResponse, ItemEnvelope, ListEnvelope
from tourbook.schemas.booking import BookingCreate, BookingUpdate
from tourbook.services.booking_service import booking_service

router = APIRouter(prefix="/api/v1/bookings", tags=["Bookings"])

_NOT_FOUND = {404: {"description": "Booking, tour or user not found", "model": ErrorResponse}}


@router.get("", response_model=ListEnvelope, summary="List bookings")
async def get_all_bookings(request: Request, db: AsyncSession = Depends(get_db_session)):
    return await booking_service.get_all(db, request.query_params.multi_items())


@router.post(
    "",
    response_model=ItemEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses=_NOT_FOUND,
    summary="Create a booking",
)
async def create_booking(payload: BookingCreate, db: AsyncSession = Depends(get_db_session)):
    return await booking_service.create_one(db, payload.model_dump())


@router.get("/{booking_id}", response_model=ItemEnvelope, responses=_NOT_FOUND, summary="Get a booking")
async def get_booking(booking_id: UUID, db: AsyncSession = Depends(get_db_session)):
    return await booking_service.get_one(db, booking_id)


@router.patch("/{booking_id}", response_model=ItemEnvelope, responses=_NOT_FOUND, summary="Update a booking")
async def update_booking(booking_id: UUID, payload: BookingUpdate, db: AsyncSession = Depends(get_db_session)):
    return await booking_service.update_one(db, booking_id, payload.model_dump(exclude_unset=True))


@router.delete(
    "/{booking_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=_NOT_FOUND,
    summary="Delete a booking",
)
async def delete_booking(booking_id: UUID, db: AsyncSession = Depends(get_db_session)):
    await booking_service.delete_one(db, booking_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
