"""Stored rows backing the event document collection.

Each event document is one EventDocument row whose columns carry the wire
field names. The participants array is kept as EventParticipant rows so that
membership can be queried and so that adding a participant twice is a no-op.
"""

from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from capture.models.event import EVENT_COLLECTION


class EventDocument(SQLModel, table=True):
    """One document in the ``events`` collection, keyed by event id."""
    __tablename__ = EVENT_COLLECTION

    id: str = Field(primary_key=True)
    event_name: str = ""
    title: str = ""
    subtitle: str = ""
    button_text: str = ""
    background_image_url: str = ""
    creator_id: str = Field(default="", index=True)
    status: str = Field(default="active", index=True)
    end_date: datetime | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC), index=True)
    reveal_photos_timing: str = "Immediately"
    photos_per_person: int = 10
    max_guests: int = 10
    gallery_access: bool = True

    # Relationship
    participant_rows: list["EventParticipant"] = Relationship(
        back_populates="event",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "order_by": "EventParticipant.id",
        },
    )


class EventParticipant(SQLModel, table=True):
    """A guest who joined an event.

    Attributes:
        id: Insertion order of the participant within the store.
        event_id: Foreign key to the event document.
        user_id: Identity of the guest.
        event: Reference to the parent EventDocument.
    """
    __tablename__ = "event_participants"
    __table_args__ = (UniqueConstraint("event_id", "user_id"),)

    id: int | None = Field(default=None, primary_key=True)
    event_id: str = Field(foreign_key=f"{EVENT_COLLECTION}.id", index=True)
    user_id: str = Field(index=True)

    # Relationship
    event: Optional["EventDocument"] = Relationship(back_populates="participant_rows")
