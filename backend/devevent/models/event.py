"""
Event model.

Key design decisions:
- `slug` carries a unique index; it is derived from `title` by the
  validation pipeline, never supplied by clients
- `date` is stored as the canonical YYYY-MM-DD string and `time` as free
  text ("10:00 AM"), matching what organizers enter
- `agenda` and `tags` are ordered string lists kept in JSON columns
"""

from sqlalchemy import JSON, Column, Index, Integer, String, Text

from devevent.db.base import Base, TimestampMixin

EVENT_MODES = ("online", "offline", "hybrid")


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=False)
    overview = Column(Text, nullable=False)
    image = Column(String(1024), nullable=False)
    venue = Column(String(255), nullable=False)
    location = Column(String(255), nullable=False)
    date = Column(String(10), nullable=False)
    time = Column(String(50), nullable=False)
    mode = Column(String(10), nullable=False)
    audience = Column(String(255), nullable=False)
    agenda = Column(JSON, nullable=False)
    organizer = Column(String(255), nullable=False)
    tags = Column(JSON, nullable=False)

    __table_args__ = (
        # Listing reads newest first
        Index("ix_events_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, slug={self.slug}, date={self.date})>"
