"""
Booking service.

Write path:
  1. prepare_booking: required fields, email trimmed/lowercased/shape-checked
  2. ensure_event_exists: the referenced event must exist right now
  3. flush: the (event_id, email) unique constraint rejects duplicates

The referential check is done here rather than trusted to the database,
SQLite for one does not enforce foreign keys unless asked to.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from devevent.core.errors import ConflictError, ValidationError
from devevent.core.logging import get_logger
from devevent.core.metrics import record_booking_attempt
from devevent.models.booking import Booking
from devevent.schemas.booking import BookingCreate
from devevent.services.event_service import get_event_by_slug
from devevent.services.validation import ensure_event_exists, prepare_booking

logger = get_logger(__name__)


async def create_booking(db: AsyncSession, booking_data: BookingCreate) -> Booking:
    try:
        record = prepare_booking(booking_data.model_dump())
        await ensure_event_exists(db, record["event_id"])
    except ValidationError:
        record_booking_attempt("invalid")
        raise

    booking = Booking(event_id=record["event_id"], email=record["email"])
    db.add(booking)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        record_booking_attempt("conflict")
        logger.warning("booking_duplicate", event_id=record["event_id"])
        raise ConflictError("A booking for this email already exists for this event")

    await db.refresh(booking)
    record_booking_attempt("success")
    logger.info("booking_created", booking_id=booking.id, event_id=booking.event_id)
    return booking


async def list_event_bookings(db: AsyncSession, slug: str) -> list[Booking]:
    """Bookings of one event, newest first (ix_bookings_event_created)."""
    event = await get_event_by_slug(db, slug)
    result = await db.execute(
        select(Booking)
        .where(Booking.event_id == event.id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    return list(result.scalars().all())
