"""
Booking endpoints.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from devevent.db.session import get_db
from devevent.schemas.booking import BookingCreate, BookingResponse
from devevent.services.booking_service import create_booking

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking_endpoint(
    booking_data: BookingCreate,
    db: AsyncSession = Depends(get_db),
):
    """
    Book a place at an event for an email address.

    400 if the event does not exist or the email is malformed,
    409 if this email already booked this event.
    """
    return await create_booking(db, booking_data)
