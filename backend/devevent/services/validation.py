"""
Pre-persist validation and normalization for events and bookings.

Each entity has an ordered pipeline of steps. The pipeline works on a copy
of the incoming record; every step returns it normalized or raises
ValidationError, and names the fields that trigger it:

    create  -> changed=None, every step runs
    update  -> only steps whose trigger fields were changed run

so a title edit recomputes the slug while an untouched date is left as
stored. The pipelines run before the row is flushed, which is also before
the store checks slug and booking uniqueness.
"""

import re
from datetime import date, datetime
from email.utils import parsedate_to_datetime
from typing import Callable, Iterable, NamedTuple, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from devevent.core.errors import ValidationError
from devevent.models.event import EVENT_MODES, Event

Record = dict


class PipelineStep(NamedTuple):
    fields: frozenset
    apply: Callable[[Record], Record]


def run_pipeline(steps: Iterable[PipelineStep], record: Record, changed: Optional[set] = None) -> Record:
    result = dict(record)
    for step in steps:
        if changed is None or step.fields & changed:
            result = step.apply(result)
    return result


# -- event field normalizers ------------------------------------------------

_NON_SLUG_CHARS = re.compile(r"[^A-Za-z0-9_\s-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")

DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%B %d, %Y",
    "%B %d %Y",
    "%b %d, %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%d %B, %Y",
    "%A, %B %d, %Y",
    "%a, %b %d, %Y",
    "%a %b %d %Y",
)


def derive_slug(title: str) -> str:
    """
    URL-safe slug for a title: "React Summit 2025!" -> "react-summit-2025".

    Applying it to its own output returns the same slug.
    """
    slug = title.lower().strip()
    slug = _NON_SLUG_CHARS.sub("", slug)
    slug = _WHITESPACE.sub("-", slug)
    slug = _HYPHENS.sub("-", slug)
    return slug.strip("-")


def _parse_calendar_date(value: str) -> Optional[date]:
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue

    # RFC 2822 style, e.g. "Tue, 05 Mar 2024 10:00:00 GMT"
    try:
        return parsedate_to_datetime(value).date()
    except (TypeError, ValueError, IndexError):
        return None


def normalize_date(value: str) -> str:
    """Canonical YYYY-MM-DD for any accepted date spelling."""
    parsed = _parse_calendar_date(value.strip()) if isinstance(value, str) else None
    if parsed is None:
        raise ValidationError("Invalid date format")
    return parsed.isoformat()


def normalize_time(value: str) -> str:
    normalized = value.strip()
    if not normalized:
        raise ValidationError("Time cannot be empty")
    return normalized


def normalize_mode(value: str) -> str:
    mode = value.strip().lower()
    if mode not in EVENT_MODES:
        raise ValidationError(
            f"`{value}` is not a valid mode. Expected one of: {', '.join(EVENT_MODES)}"
        )
    return mode


def normalize_items(value, label: str) -> list:
    """Trim list items, drop blank ones, require at least one left."""
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise ValidationError(f"{label} must be a list of strings")
    items = [item.strip() for item in value if item.strip()]
    if not items:
        raise ValidationError(f"{label} must have at least one item")
    return items


# -- event pipeline -----------------------------------------------------------

TRIMMED_EVENT_FIELDS = ("title", "description", "overview", "venue", "location", "audience", "organizer")

EVENT_REQUIRED = {
    "title": "Event title is required",
    "description": "Event description is required",
    "overview": "Event overview is required",
    "image": "Event image is required",
    "venue": "Event venue is required",
    "location": "Event location is required",
    "date": "Event date is required",
    "time": "Event time is required",
    "mode": "Event mode is required",
    "audience": "Event audience is required",
    "agenda": "Event agenda is required",
    "organizer": "Event organizer is required",
    "tags": "Event tags are required",
}


def _is_missing(value) -> bool:
    return value is None or value == ""


def _trim_event_fields(record: Record) -> Record:
    for field in TRIMMED_EVENT_FIELDS:
        if isinstance(record.get(field), str):
            record[field] = record[field].strip()
    return record


def _require_event_fields(record: Record) -> Record:
    for field, message in EVENT_REQUIRED.items():
        if _is_missing(record.get(field)):
            raise ValidationError(message)
    return record


def _apply_mode(record: Record) -> Record:
    record["mode"] = normalize_mode(record["mode"])
    return record


def _apply_items(record: Record) -> Record:
    record["agenda"] = normalize_items(record["agenda"], "Agenda")
    record["tags"] = normalize_items(record["tags"], "Tags")
    return record


def _apply_slug(record: Record) -> Record:
    record["slug"] = derive_slug(record["title"])
    if not record["slug"]:
        raise ValidationError("Event title must contain at least one letter or digit")
    return record


def _apply_date(record: Record) -> Record:
    record["date"] = normalize_date(record["date"])
    return record


def _apply_time(record: Record) -> Record:
    record["time"] = normalize_time(record["time"])
    return record


EVENT_PIPELINE = (
    PipelineStep(frozenset(TRIMMED_EVENT_FIELDS), _trim_event_fields),
    PipelineStep(frozenset(EVENT_REQUIRED), _require_event_fields),
    PipelineStep(frozenset({"mode"}), _apply_mode),
    PipelineStep(frozenset({"agenda", "tags"}), _apply_items),
    PipelineStep(frozenset({"title"}), _apply_slug),
    PipelineStep(frozenset({"date"}), _apply_date),
    PipelineStep(frozenset({"time"}), _apply_time),
)


def prepare_event(record: Record, changed: Optional[set] = None) -> Record:
    """Validate and normalize an event record before it is written."""
    return run_pipeline(EVENT_PIPELINE, record, changed)


# -- booking pipeline ---------------------------------------------------------

_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

BOOKING_REQUIRED = {
    "event_id": "Event ID is required",
    "email": "Email is required",
}


def normalize_email(value: str) -> str:
    email = value.strip().lower()
    if not _EMAIL.match(email):
        raise ValidationError("Please provide a valid email address")
    return email


def _require_booking_fields(record: Record) -> Record:
    for field, message in BOOKING_REQUIRED.items():
        value = record.get(field)
        if _is_missing(value) or (isinstance(value, str) and not value.strip()):
            raise ValidationError(message)
    return record


def _apply_email(record: Record) -> Record:
    record["email"] = normalize_email(record["email"])
    return record


BOOKING_PIPELINE = (
    PipelineStep(frozenset(BOOKING_REQUIRED), _require_booking_fields),
    PipelineStep(frozenset({"email"}), _apply_email),
)


def prepare_booking(record: Record, changed: Optional[set] = None) -> Record:
    return run_pipeline(BOOKING_PIPELINE, record, changed)


async def ensure_event_exists(db: AsyncSession, event_id: int) -> Event:
    """Referential check: the store does not enforce the foreign key for us."""
    event = await db.get(Event, event_id)
    if event is None:
        raise ValidationError(
            f"Event with ID {event_id} does not exist. Please provide a valid event ID."
        )
    return event
