"""
Pydantic schemas for booking requests and responses.
"""

from datetime import datetime

from pydantic import BaseModel


class BookingCreate(BaseModel):
    event_id: int
    # Shape and case are handled by the booking pipeline
    email: str


class BookingResponse(BaseModel):
    id: int
    event_id: int
    email: str
    created_at: datetime

    model_config = {"from_attributes": True}
