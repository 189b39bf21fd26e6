"""Booking CRUD. A booking without an explicit price is charged the tour's price."""

from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from tourbook.models.booking import Booking
from tourbook.schemas.booking import BookingResponse
from tourbook.services.crud_service import CrudService
from tourbook.services.tour_service import tour_service
from tourbook.services.user_service import user_service


class BookingService(CrudService[Booking]):
    def __init__(self):
        super().__init__(Booking, BookingResponse, "booking", filterable=("tourId", "userId", "price", "paid"))

    async def before_create(self, db: AsyncSession, data: Dict[str, Any]) -> Dict[str, Any]:
        tour = await tour_service.get_instance(db, data["tour_id"])
        await user_service.get_instance(db, data["user_id"])
        if data.get("price") is None:
            data["price"] = tour.price
        return data


booking_service = BookingService()
