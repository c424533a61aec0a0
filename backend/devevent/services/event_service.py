"""
Event service: create, list, read, update and delete events.

Every write goes through `prepare_event` before the row is flushed. Slug
uniqueness is left to the unique index; a collision surfaces as an
IntegrityError on flush and is reported as a ConflictError.
"""

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from devevent.core.errors import AppError, ConflictError, NotFoundError
from devevent.core.logging import get_logger
from devevent.core.metrics import record_event_operation
from devevent.infrastructure.media import MediaUploader
from devevent.models.booking import Booking
from devevent.models.event import Event
from devevent.services.validation import EVENT_REQUIRED, prepare_event

logger = get_logger(__name__)

# Placeholder so metadata is validated before the image is uploaded
PENDING_IMAGE = "pending://upload"


async def _flush_unique_slug(db: AsyncSession, slug: str) -> None:
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"An event with the slug '{slug}' already exists")


async def create_event(
    db: AsyncSession,
    uploader: MediaUploader,
    fields: dict,
    image: bytes,
    filename: str,
    content_type: str,
) -> Event:
    """
    Validate metadata, upload the image, then persist the event.
    Nothing is written if validation or the upload fails.
    """
    try:
        record = prepare_event({**fields, "image": PENDING_IMAGE})
        record["image"] = await uploader.upload(image, filename=filename, content_type=content_type)

        event = Event(**record)
        db.add(event)
        await _flush_unique_slug(db, record["slug"])
        await db.refresh(event)
    except AppError as e:
        record_event_operation("create", "error" if e.status_code >= 500 else "rejected")
        raise

    record_event_operation("create", "success")
    logger.info("event_created", event_id=event.id, slug=event.slug, mode=event.mode)
    return event


async def list_events(db: AsyncSession) -> list[Event]:
    """All events, newest first. Ties on created_at fall back to id."""
    result = await db.execute(
        select(Event).order_by(Event.created_at.desc(), Event.id.desc())
    )
    return list(result.scalars().all())


async def get_event_by_slug(db: AsyncSession, slug: str) -> Event:
    result = await db.execute(select(Event).where(Event.slug == slug))
    event = result.scalar_one_or_none()
    if not event:
        raise NotFoundError(f"Event '{slug}' not found")
    return event


async def update_event(db: AsyncSession, slug: str, changes: dict) -> Event:
    """
    Apply a partial update. Only fields whose value actually changes are
    marked as changed, so an unchanged title keeps its slug.
    """
    event = await get_event_by_slug(db, slug)
    changes = {k: v for k, v in changes.items() if v is not None}
    changed = {k for k, v in changes.items() if getattr(event, k) != v}
    if not changed:
        return event

    current = {field: getattr(event, field) for field in EVENT_REQUIRED}
    record = prepare_event({**current, **changes}, changed=changed)

    for field, value in record.items():
        if field == "slug" or field in EVENT_REQUIRED:
            if getattr(event, field) != value:
                setattr(event, field, value)

    await _flush_unique_slug(db, record.get("slug", event.slug))
    await db.refresh(event)

    record_event_operation("update", "success")
    logger.info("event_updated", event_id=event.id, slug=event.slug, fields=sorted(changed))
    return event


async def count_bookings(db: AsyncSession, event_id: int) -> int:
    result = await db.execute(
        select(func.count()).select_from(Booking).where(Booking.event_id == event_id)
    )
    return result.scalar_one()


async def delete_event(db: AsyncSession, slug: str) -> None:
    """Delete an event. Refused while bookings reference it."""
    event = await get_event_by_slug(db, slug)
    bookings = await count_bookings(db, event.id)
    if bookings:
        record_event_operation("delete", "rejected")
        raise ConflictError(
            f"Event '{slug}' has {bookings} booking(s) and cannot be deleted"
        )

    await db.delete(event)
    await db.flush()

    record_event_operation("delete", "success")
    logger.info("event_deleted", event_id=event.id, slug=slug)
