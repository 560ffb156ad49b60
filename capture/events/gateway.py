"""Event store gateway: the only path between Event entities and storage.

The gateway translates Event entities to and from documents, uploads
background images, and enforces the ownership rules on every mutating call:

- ``create`` stamps the caller as ``creator_id``, whatever the input held.
- ``update`` and ``end_event`` require the caller to own the event.
- ``status`` only moves from "active" to "ended".

Single-event operations raise EventError subclasses. The two live list
operations never raise; they degrade to an empty list.
"""
import asyncio
import logging

from googleapiclient.errors import HttpError
from sqlalchemy.exc import SQLAlchemyError

from capture.core.identity import IdentityProvider
from capture.events.codec import event_from_document, event_to_document
from capture.events.errors import (
    NotFound,
    ReferenceUnavailable,
    StorageFailed,
    TransportFailure,
    Unauthenticated,
    Unauthorized,
)
from capture.events.images import JPEG_CONTENT_TYPE, encode_jpeg, image_path
from capture.events.subscriptions import EventsCallback, LiveQuery, Subscription
from capture.models import Event
from capture.models.event import STATUS_ENDED
from capture.storage.blobs import BlobStore
from capture.storage.documents import DocumentNotFound, DocumentStore

logger = logging.getLogger(__name__)

# Fields an owner may change through update(); identity, ownership, creation
# time, lifecycle status and membership each have their own path.
EDITABLE_FIELDS = (
    "event_name",
    "title",
    "subtitle",
    "button_text",
    "background_image_url",
    "end_date",
    "reveal_photos_timing",
    "photos_per_person",
    "max_guests",
    "gallery_access",
)


class EventGateway:
    """Reads and writes events on behalf of the current caller."""

    def __init__(self, store: DocumentStore, blobs: BlobStore, identity: IdentityProvider):
        self.store = store
        self.blobs = blobs
        self.identity = identity

    def current_user_id(self) -> str | None:
        return self.identity.current_user_id()

    def _require_caller(self) -> str:
        user_id = self.current_user_id()
        if not user_id:
            raise Unauthenticated()
        return user_id

    async def create(self, event: Event, media: bytes | None = None) -> Event:
        """
        Persist a new event owned by the caller.

        If ``media`` is given it is uploaded first and the resulting URL is
        written with the document. Returns the event as stored.
        """
        user_id = self._require_caller()

        image_url = event.background_image_url
        if media is not None:
            image_url = await self.upload_image(event.id, media)

        created = event.model_copy(
            update={"creator_id": user_id, "background_image_url": image_url}
        )
        document = event_to_document(created)
        try:
            self.store.set(created.id, document)
        except SQLAlchemyError as e:
            raise TransportFailure(str(e)) from e

        logger.info(f"Created event {created.id} for {user_id}")
        return created

    async def upload_image(self, event_id: str, media: bytes) -> str:
        """Encode ``media`` as JPEG, store it under the event's prefix, return its URL."""
        payload = encode_jpeg(media)
        path = image_path(event_id)

        try:
            url = await asyncio.to_thread(self.blobs.put, path, payload, JPEG_CONTENT_TYPE)
        except (HttpError, OSError, ValueError) as e:
            logger.error(f"Failed to upload image for event {event_id}: {e}")
            raise StorageFailed(str(e)) from e

        if not url:
            raise ReferenceUnavailable()
        return url

    async def update(self, event: Event) -> None:
        """
        Merge the editable fields of ``event`` into its stored document.

        No diffing is done: every editable field is written as given.
        """
        user_id = self._require_caller()
        if event.creator_id != user_id:
            raise Unauthorized("Not authorized to update this event")

        stored = await self.get(event.id)
        if stored.creator_id != user_id:
            raise Unauthorized("Not authorized to update this event")

        document = event_to_document(event)
        changes = {field: document[field] for field in EDITABLE_FIELDS}
        self._merge(event.id, changes)
        logger.info(f"Updated event {event.id}")

    async def get(self, event_id: str) -> Event:
        try:
            document = self.store.get(event_id)
        except SQLAlchemyError as e:
            raise TransportFailure(str(e)) from e

        if document is None:
            raise NotFound()
        return event_from_document(event_id, document)

    def list_hosted(self, caller_id: str | None, on_change: EventsCallback) -> Subscription:
        """Follow the events ``caller_id`` created, most recent first."""
        if not caller_id:
            on_change([])
            return Subscription()

        def query() -> list[Event]:
            return [event_from_document(i, d) for i, d in self.store.where_creator(caller_id)]

        return LiveQuery("hosted events", query, on_change).start(self.store.add_listener)

    def list_participating(self, caller_id: str | None, on_change: EventsCallback) -> Subscription:
        """Follow the events ``caller_id`` joined, most recent first."""
        if not caller_id:
            on_change([])
            return Subscription()

        def query() -> list[Event]:
            return [event_from_document(i, d) for i, d in self.store.where_participant(caller_id)]

        return LiveQuery("participating events", query, on_change).start(self.store.add_listener)

    async def add_participant(self, event_id: str, user_id: str) -> None:
        """Add ``user_id`` to the event's participants. Adding twice is a no-op."""
        try:
            self.store.array_union(event_id, "participants", [user_id])
        except DocumentNotFound as e:
            raise NotFound() from e
        except SQLAlchemyError as e:
            raise TransportFailure(str(e)) from e
        logger.info(f"Added participant {user_id} to event {event_id}")

    async def end_event(self, event_id: str) -> None:
        """Mark the caller's event as ended."""
        user_id = self._require_caller()

        event = await self.get(event_id)
        if event.creator_id != user_id:
            raise Unauthorized("Not authorized to end this event")

        self._merge(event_id, {"status": STATUS_ENDED})
        logger.info(f"Ended event {event_id}")

    def _merge(self, event_id: str, changes: dict) -> None:
        try:
            self.store.merge(event_id, changes)
        except DocumentNotFound as e:
            raise NotFound() from e
        except SQLAlchemyError as e:
            raise TransportFailure(str(e)) from e
