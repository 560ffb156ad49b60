"""Event entity for hosted photo events.

This module defines the Event model: one hosted occasion (a party, a
wedding) where the host configures when photos are revealed, how many photos
each guest may take, and how many guests may join. Events are created by a
host, joined by guests, and eventually ended.
"""

from datetime import UTC, datetime

from sqlmodel import Field, SQLModel

EVENT_COLLECTION = "events"

STATUS_ACTIVE = "active"
STATUS_ENDED = "ended"

REVEAL_PHOTOS_TIMINGS = (
    "Immediately",
    "1 hour after",
    "12 hours after",
    "24 hours after",
    "48 hours after",
)

DEFAULT_REVEAL_PHOTOS_TIMING = REVEAL_PHOTOS_TIMINGS[0]
DEFAULT_PHOTOS_PER_PERSON = 10
DEFAULT_MAX_GUESTS = 10


class Event(SQLModel):
    """A hosted event as held in memory.

    Every field except ``id`` has a default so a partially specified event
    can always be constructed. The persisted form is produced by
    :func:`capture.events.codec.event_to_document`.

    Attributes:
        id: Unique identifier, also the document key. Never changes.
        event_name: Display name shown in event lists.
        title: Headline shown on the guest landing card.
        subtitle: Secondary line under the title.
        button_text: Call-to-action label on the landing card.
        background_image_url: Public URL of the background image, or "".
        creator_id: Host user id. Assigned once by the gateway at creation.
        status: "active" or "ended". Only moves forward.
        end_date: When the event closes, if scheduled.
        created_at: Creation timestamp, used for list ordering.
        reveal_photos_timing: When guests' photos become visible.
            One of REVEAL_PHOTOS_TIMINGS.
        photos_per_person: Photo quota for each participant.
        max_guests: Guest capacity.
        gallery_access: Whether guests may browse the gallery.
        participants: User ids of guests who joined.
    """
    id: str
    event_name: str = ""
    title: str = ""
    subtitle: str = ""
    button_text: str = ""
    background_image_url: str = ""
    creator_id: str = ""
    status: str = Field(default=STATUS_ACTIVE)
    end_date: datetime | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    reveal_photos_timing: str = Field(default=DEFAULT_REVEAL_PHOTOS_TIMING)
    photos_per_person: int = Field(default=DEFAULT_PHOTOS_PER_PERSON)
    max_guests: int = Field(default=DEFAULT_MAX_GUESTS)
    gallery_access: bool = True
    participants: list[str] = Field(default_factory=list)

    @property
    def is_ended(self) -> bool:
        return self.status == STATUS_ENDED


def describe_time_status(event: Event, now: datetime | None = None) -> str:
    """Short label describing how long an event has left.

    Returns "No end date", "Ended", "Ending 3d from now", "Ending 5h from now"
    or "Ending soon".
    """
    if event.end_date is None:
        return "No end date"

    now = _as_utc(now or datetime.now(UTC))
    end_date = _as_utc(event.end_date)

    if event.is_ended or end_date < now:
        return "Ended"

    remaining = end_date - now
    if remaining.days > 0:
        return f"Ending {remaining.days}d from now"

    hours = remaining.seconds // 3600
    if hours > 0:
        return f"Ending {hours}h from now"
    return "Ending soon"


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value
