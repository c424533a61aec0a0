"""
Booking model: one attendee email registered for one event.

Key design decisions:
- Unique constraint on (event_id, email) allows one booking per email per event
- Separate index on email for "my bookings" lookups
- Composite (event_id, created_at) index serves the per-event newest-first list
- ON DELETE RESTRICT: an event with bookings cannot be deleted
"""

from sqlalchemy import Column, ForeignKey, Index, Integer, String, UniqueConstraint

from devevent.db.base import Base, TimestampMixin


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="RESTRICT"), nullable=False)
    email = Column(String(320), nullable=False)

    __table_args__ = (
        UniqueConstraint("event_id", "email", name="uq_booking_event_email"),
        Index("ix_bookings_email", "email"),
        Index("ix_bookings_event_created", "event_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, event={self.event_id}, email={self.email})>"
