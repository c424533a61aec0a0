"""
Pydantic schemas for event responses and partial updates.

Creation arrives as multipart form data and is validated by the
pre-persist pipeline, so there is no EventCreate model.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class EventResponse(BaseModel):
    id: int
    title: str
    slug: str
    description: str
    overview: str
    image: str
    venue: str
    location: str
    date: str
    time: str
    mode: str
    audience: str
    agenda: list[str]
    organizer: str
    tags: list[str]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class EventCreatedResponse(BaseModel):
    message: str = "Event created successfully"
    event: EventResponse


class EventListResponse(BaseModel):
    message: str = "Event list fetched successfully"
    events: list[EventResponse]
    total: int
    cached: bool = False


class EventUpdate(BaseModel):
    """Fields an organizer may change after creation. The image is fixed."""

    title: Optional[str] = None
    description: Optional[str] = None
    overview: Optional[str] = None
    venue: Optional[str] = None
    location: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    mode: Optional[str] = None
    audience: Optional[str] = None
    agenda: Optional[list[str]] = None
    organizer: Optional[str] = None
    tags: Optional[list[str]] = None
