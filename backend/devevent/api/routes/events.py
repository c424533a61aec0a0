"""
Event endpoints.

POST takes multipart form data (metadata plus the image file); the rest
are JSON. The listing is served from the Redis cache when it is warm.
"""

import json
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from devevent.core.errors import AppError, ValidationError
from devevent.core.logging import get_logger
from devevent.core.metrics import record_event_operation
from devevent.db.session import get_db
from devevent.infrastructure.media import MediaUploader, get_media_uploader
from devevent.schemas.booking import BookingResponse
from devevent.schemas.event import (
    EventCreatedResponse,
    EventListResponse,
    EventResponse,
    EventUpdate,
)
from devevent.services.booking_service import list_event_bookings
from devevent.services.cache_service import EventListCache, get_event_cache
from devevent.services.event_service import (
    create_event,
    delete_event,
    get_event_by_slug,
    list_events,
    update_event,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


def _form_list(values: Optional[list[str]], label: str) -> Optional[list]:
    """Repeated form fields, or a single field holding a JSON array."""
    if values is None:
        return None
    if len(values) == 1 and values[0].lstrip().startswith("["):
        try:
            return json.loads(values[0])
        except json.JSONDecodeError:
            # Plain text such as "[Workshop] Intro"
            return values
    return values


@router.post("/", response_model=EventCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    overview: Optional[str] = Form(None),
    venue: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    date: Optional[str] = Form(None),
    time: Optional[str] = Form(None),
    mode: Optional[str] = Form(None),
    audience: Optional[str] = Form(None),
    agenda: Optional[list[str]] = Form(None),
    organizer: Optional[str] = Form(None),
    tags: Optional[list[str]] = Form(None),
    image: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    uploader: MediaUploader = Depends(get_media_uploader),
    cache: EventListCache = Depends(get_event_cache),
):
    """Create an event. The image is uploaded before anything is stored."""
    if image is None or not image.filename:
        raise ValidationError("Image file is required")
    if not (image.content_type or "").startswith("image/"):
        raise ValidationError("Uploaded file must be an image")

    payload = await image.read()
    if not payload:
        raise ValidationError("Image file is required")

    fields = {
        "title": title,
        "description": description,
        "overview": overview,
        "venue": venue,
        "location": location,
        "date": date,
        "time": time,
        "mode": mode,
        "audience": audience,
        "agenda": _form_list(agenda, "Agenda"),
        "organizer": organizer,
        "tags": _form_list(tags, "Tags"),
    }

    try:
        event = await create_event(
            db,
            uploader,
            fields,
            image=payload,
            filename=image.filename,
            content_type=image.content_type,
        )
    except SQLAlchemyError as e:
        record_event_operation("create", "error")
        logger.exception("event_create_failed", error=str(e))
        raise AppError("Event Creation Failed") from e

    # Commit first: a reader landing between invalidate and commit would
    # re-cache the old listing
    await db.commit()
    await cache.invalidate()
    return EventCreatedResponse(event=EventResponse.model_validate(event))


@router.get("/", response_model=EventListResponse)
async def list_events_endpoint(
    db: AsyncSession = Depends(get_db),
    cache: EventListCache = Depends(get_event_cache),
):
    """All events, newest first."""
    cached = await cache.get_events()
    if cached:
        logger.info("events_list_cache_hit")
        cached["cached"] = True
        return EventListResponse(**cached)

    try:
        events = await list_events(db)
    except SQLAlchemyError as e:
        record_event_operation("list", "error")
        logger.exception("event_list_failed", error=str(e))
        raise AppError("Event fetching failed") from e

    response_data = {
        "events": [EventResponse.model_validate(e).model_dump(mode="json") for e in events],
        "total": len(events),
        "cached": False,
    }
    await cache.set_events(response_data)
    return EventListResponse(**response_data)


@router.get("/{slug}", response_model=EventResponse)
async def get_event_endpoint(slug: str, db: AsyncSession = Depends(get_db)):
    return await get_event_by_slug(db, slug)


@router.patch("/{slug}", response_model=EventResponse)
async def update_event_endpoint(
    slug: str,
    changes: EventUpdate,
    db: AsyncSession = Depends(get_db),
    cache: EventListCache = Depends(get_event_cache),
):
    """Partial update. A new title regenerates the slug."""
    event = await update_event(db, slug, changes.model_dump(exclude_unset=True))
    await db.commit()
    await cache.invalidate()
    return event


@router.delete("/{slug}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event_endpoint(
    slug: str,
    db: AsyncSession = Depends(get_db),
    cache: EventListCache = Depends(get_event_cache),
):
    """Delete an event that has no bookings."""
    await delete_event(db, slug)
    await db.commit()
    await cache.invalidate()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{slug}/bookings", response_model=list[BookingResponse])
async def list_event_bookings_endpoint(slug: str, db: AsyncSession = Depends(get_db)):
    return await list_event_bookings(db, slug)
