"""Draft editing and commit sequencing for a single event.

A DraftCoordinator owns one Draft, the in-progress state of an event being
created or edited, and commits it through the gateway. Observers follow the
commit through its progress state:

    Idle -> Loading -> Success
                    -> Error(message)

While Loading, further commits are ignored. After Error a retry may be
started at once. A coordinator belongs to one editing session and is not
safe to drive from several threads at once.
"""
import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from capture.events.errors import NoLoadedEvent
from capture.events.gateway import EventGateway
from capture.events.subscriptions import Subscription
from capture.models import Event
from capture.models.event import (
    DEFAULT_MAX_GUESTS,
    DEFAULT_PHOTOS_PER_PERSON,
    DEFAULT_REVEAL_PHOTOS_TIMING,
    STATUS_ACTIVE,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Loading:
    pass


@dataclass(frozen=True)
class Success:
    pass


@dataclass(frozen=True)
class Error:
    message: str


ProgressState = Idle | Loading | Success | Error


def state_name(state: ProgressState) -> str:
    return type(state).__name__.lower()


def _default_end_date() -> datetime:
    return datetime.now(UTC) + timedelta(days=7)


@dataclass
class Draft:
    """Unsaved edits to an event.

    ``staged_image`` holds raw bytes of a newly picked background image.
    ``existing_background_image_url`` keeps the saved image so an edit that
    does not touch the image preserves it.
    """
    event_name: str = "My Event"
    title: str = "Take a Photo!"
    subtitle: str = ""
    button_text: str = "Take Photos"
    end_date: datetime | None = field(default_factory=_default_end_date)
    reveal_photos_timing: str = DEFAULT_REVEAL_PHOTOS_TIMING
    photos_per_person: int = DEFAULT_PHOTOS_PER_PERSON
    max_guests: int = DEFAULT_MAX_GUESTS
    gallery_access: bool = True
    staged_image: bytes | None = None
    existing_background_image_url: str = ""

    @classmethod
    def from_event(cls, event: Event) -> "Draft":
        return cls(
            event_name=event.event_name,
            title=event.title,
            subtitle=event.subtitle,
            button_text=event.button_text,
            end_date=event.end_date or _default_end_date(),
            reveal_photos_timing=event.reveal_photos_timing,
            photos_per_person=event.photos_per_person,
            max_guests=event.max_guests,
            gallery_access=event.gallery_access,
            existing_background_image_url=event.background_image_url,
        )


class DraftCoordinator:
    """Holds one Draft and drives its commit through an EventGateway."""

    def __init__(self, gateway: EventGateway, draft: Draft | None = None):
        self.gateway = gateway
        self.draft = draft or Draft()
        self.loaded_event: Event | None = None
        self.hosted_events: list[Event] = []
        self.participating_events: list[Event] = []
        self._state: ProgressState = Idle()
        self._observers: list[Callable[[ProgressState], None]] = []
        self._hosted: Subscription | None = None
        self._participating: Subscription | None = None

    # Progress state

    @property
    def state(self) -> ProgressState:
        return self._state

    def observe(self, callback: Callable[[ProgressState], None]) -> Callable[[], None]:
        """Call ``callback`` on every state change. Returns a remover."""
        self._observers.append(callback)

        def remove():
            if callback in self._observers:
                self._observers.remove(callback)

        return remove

    def _set_state(self, state: ProgressState) -> None:
        self._state = state
        for callback in list(self._observers):
            callback(state)

    def reset(self) -> None:
        """Start a fresh draft after a finished commit."""
        self.draft = Draft()
        self.loaded_event = None
        self._set_state(Idle())

    # Field setters

    def set_event_name(self, name: str) -> None:
        self.draft.event_name = name

    def set_title(self, title: str) -> None:
        self.draft.title = title

    def set_subtitle(self, subtitle: str) -> None:
        self.draft.subtitle = subtitle

    def set_button_text(self, text: str) -> None:
        self.draft.button_text = text

    def set_reveal_photos_timing(self, timing: str) -> None:
        self.draft.reveal_photos_timing = timing

    def set_photos_per_person(self, count: int) -> None:
        self.draft.photos_per_person = count

    def set_max_guests(self, count: int) -> None:
        self.draft.max_guests = count

    def set_gallery_access(self, enabled: bool) -> None:
        self.draft.gallery_access = enabled

    def set_end_date(self, end_date: datetime) -> None:
        self.draft.end_date = end_date

    def stage_image(self, media: bytes) -> None:
        self.draft.staged_image = media

    def load_from_existing(self, event: Event) -> None:
        """Mirror a saved event in the draft, ready for editing."""
        self.loaded_event = event
        self.draft = Draft.from_event(event)
        self._set_state(Idle())

    # Commits

    def commit_create(self) -> asyncio.Task | None:
        """
        Save the draft as a new event.

        The state is Loading when this returns. The returned task finishes
        once the state is Success or Error. Returns None, doing nothing, if a
        commit is already in flight.
        """
        if isinstance(self._state, Loading):
            logger.warning("Ignoring create while a commit is in flight")
            return None

        self._set_state(Loading())
        event = self._materialize(
            Event(
                id=str(uuid4()),
                creator_id="",
                status=STATUS_ACTIVE,
                background_image_url="",
                created_at=datetime.now(UTC),
            )
        )
        return asyncio.create_task(self._run_create(event, self.draft.staged_image))

    async def _run_create(self, event: Event, media: bytes | None) -> None:
        try:
            created = await self.gateway.create(event, media)
        except Exception as e:
            logger.error(f"Event creation failed: {e}")
            self._set_state(Error(_message(e)))
            return

        self.loaded_event = created
        self._settle_image(media, created.background_image_url)
        self._set_state(Success())
        self.load_events()

    def commit_update(self, event_id: str) -> asyncio.Task | None:
        """
        Save the draft over the loaded event.

        The draft is captured when this is called; edits made while the
        commit runs are kept for the next one. A staged image is uploaded
        before the document is written, and the write carries the new URL.
        Without a staged image the saved URL is kept.

        Raises:
            NoLoadedEvent: if no event with ``event_id`` was loaded. The
                state is left unchanged.
        """
        baseline = self.loaded_event
        if baseline is None or baseline.id != event_id:
            raise NoLoadedEvent()

        if isinstance(self._state, Loading):
            logger.warning(f"Ignoring update of {event_id} while a commit is in flight")
            return None

        self._set_state(Loading())
        updated = self._materialize(baseline).model_copy(
            update={"background_image_url": self.draft.existing_background_image_url}
        )
        return asyncio.create_task(self._run_update(updated, self.draft.staged_image))

    async def _run_update(self, updated: Event, media: bytes | None) -> None:
        try:
            if media is not None:
                url = await self.gateway.upload_image(updated.id, media)
                updated = updated.model_copy(update={"background_image_url": url})
            await self.gateway.update(updated)
        except Exception as e:
            logger.error(f"Event update failed for {updated.id}: {e}")
            self._set_state(Error(_message(e)))
            return

        self.loaded_event = updated
        self._settle_image(media, updated.background_image_url)
        self._set_state(Success())
        self.load_events()

    def _settle_image(self, media: bytes | None, image_url: str) -> None:
        """Record the saved image URL; drop the staged image only if it was the one saved."""
        self.draft.existing_background_image_url = image_url
        if media is not None and self.draft.staged_image is media:
            self.draft.staged_image = None

    def _materialize(self, base: Event) -> Event:
        """``base`` with every draft field applied."""
        draft = self.draft
        return base.model_copy(
            update={
                "event_name": draft.event_name,
                "title": draft.title,
                "subtitle": draft.subtitle,
                "button_text": draft.button_text,
                "end_date": draft.end_date,
                "reveal_photos_timing": draft.reveal_photos_timing,
                "photos_per_person": draft.photos_per_person,
                "max_guests": draft.max_guests,
                "gallery_access": draft.gallery_access,
            }
        )

    # Event lists

    def load_events(self) -> None:
        """(Re)subscribe to the caller's hosted and participating events."""
        self.close()
        caller_id = self.gateway.current_user_id()
        self._hosted = self.gateway.list_hosted(caller_id, self._on_hosted)
        self._participating = self.gateway.list_participating(caller_id, self._on_participating)

    def close(self) -> None:
        """Cancel the list subscriptions."""
        for subscription in (self._hosted, self._participating):
            if subscription:
                subscription.cancel()
        self._hosted = None
        self._participating = None

    def _on_hosted(self, events: list[Event]) -> None:
        self.hosted_events = events

    def _on_participating(self, events: list[Event]) -> None:
        self.participating_events = events


def _message(error: Exception) -> str:
    return getattr(error, "message", None) or str(error) or type(error).__name__
