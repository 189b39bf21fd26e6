"""/api/v1/users CRUD. Deactivated users answer 404."""

from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tourbook.database import get_db_session
from tourbook.schemas.common import ErrorResponse, ItemEnvelope, ListEnvelope
from tourbook.schemas.user import UserCreate, UserUpdate
from tourbook.services.user_service import user_service

router = APIRouter(prefix="/api/v1/users", tags=["Users"])

_NOT_FOUND = {404: {"description": "User not found", "model": ErrorResponse}}


@router.get("", response_model=ListEnvelope, summary="List active users")
async def get_all_users(request: Request, db: AsyncSession = Depends(get_db_session)):
    return await user_service.get_all(db, request.query_params.multi_items())


@router.post("", response_model=ItemEnvelope, status_code=status.HTTP_201_CREATED, summary="Create a user")
async def create_user(payload: UserCreate, db: AsyncSession = Depends(get_db_session)):
    return await user_service.create_one(db, payload.model_dump())


@router.get("/{user_id}", response_model=ItemEnvelope, responses=_NOT_FOUND, summary="Get a user")
async def get_user(user_id: UUID, db: AsyncSession = Depends(get_db_session)):
    return await user_service.get_one(db, user_id)


@router.patch("/{user_id}", response_model=ItemEnvelope, responses=_NOT_FOUND, summary="Update a user")
async def update_user(user_id: UUID, payload: UserUpdate, db: AsyncSession = Depends(get_db_session)):
    return await user_service.update_one(db, user_id, payload.model_dump(exclude_unset=True))


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=_NOT_FOUND,
    summary="Delete a user",
)
async def delete_user(user_id: UUID, db: AsyncSession = Depends(get_db_session)):
    await user_service.delete_one(db, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
