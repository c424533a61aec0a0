from devevent.schemas.event import (
    EventCreatedResponse,
    EventListResponse,
    EventResponse,
    EventUpdate,
)
from devevent.schemas.booking import BookingCreate, BookingResponse

__all__ = [
    "EventCreatedResponse", "EventListResponse", "EventResponse", "EventUpdate",
    "BookingCreate", "BookingResponse",
]
