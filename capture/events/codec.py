"""Translate Event entities to and from their stored document form."""
from datetime import UTC, datetime

from capture.models.event import (
    DEFAULT_MAX_GUESTS,
    DEFAULT_PHOTOS_PER_PERSON,
    DEFAULT_REVEAL_PHOTOS_TIMING,
    STATUS_ACTIVE,
    Event,
)

DOCUMENT_FIELDS = (
    "id",
    "event_name",
    "title",
    "subtitle",
    "button_text",
    "background_image_url",
    "creator_id",
    "status",
    "end_date",
    "created_at",
    "reveal_photos_timing",
    "photos_per_person",
    "max_guests",
    "gallery_access",
    "participants",
)


def event_to_document(event: Event) -> dict:
    """Build the document written for ``event``, keyed by wire field name."""
    return {
        "id": event.id,
        "event_name": event.event_name,
        "title": event.title,
        "subtitle": event.subtitle,
        "button_text": event.button_text,
        "background_image_url": event.background_image_url,
        "creator_id": event.creator_id,
        "status": event.status,
        "end_date": event.end_date,
        "created_at": event.created_at,
        "reveal_photos_timing": event.reveal_photos_timing,
        "photos_per_person": event.photos_per_person,
        "max_guests": event.max_guests,
        "gallery_access": event.gallery_access,
        "participants": list(event.participants),
    }


def event_from_document(doc_id: str, data: dict) -> Event:
    """
    Build an Event from a stored document.

    Missing or mistyped fields fall back to their defaults, so any document
    in the collection decodes. The document key always wins over an ``id``
    field inside the payload.
    """
    return Event(
        id=doc_id,
        event_name=_string(data, "event_name"),
        title=_string(data, "title"),
        subtitle=_string(data, "subtitle"),
        button_text=_string(data, "button_text"),
        background_image_url=_string(data, "background_image_url"),
        creator_id=_string(data, "creator_id"),
        status=_string(data, "status", STATUS_ACTIVE),
        end_date=_timestamp(data.get("end_date")),
        created_at=_timestamp(data.get("created_at")) or datetime.now(UTC),
        reveal_photos_timing=_string(
            data, "reveal_photos_timing", DEFAULT_REVEAL_PHOTOS_TIMING
        ),
        photos_per_person=_integer(data, "photos_per_person", DEFAULT_PHOTOS_PER_PERSON),
        max_guests=_integer(data, "max_guests", DEFAULT_MAX_GUESTS),
        gallery_access=_boolean(data, "gallery_access", True),
        participants=_strings(data.get("participants")),
    )


def _string(data: dict, key: str, default: str = "") -> str:
    value = data.get(key)
    return value if isinstance(value, str) else default


def _integer(data: dict, key: str, default: int) -> int:
    value = data.get(key)
    # bool is an int subclass; a stored flag is not a count
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return default


def _boolean(data: dict, key: str, default: bool) -> bool:
    value = data.get(key)
    return value if isinstance(value, bool) else default


def _strings(value) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


def _timestamp(value) -> datetime | None:
    """Parse a stored timestamp, accepting datetimes and ISO-8601 strings."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        # SQLite hands back naive values; everything is written in UTC
        return value.replace(tzinfo=UTC)
    return value
