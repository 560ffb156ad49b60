"""Live event lists backed by document store change notifications."""
import logging
import threading
from collections.abc import Callable

from capture.models import Event

logger = logging.getLogger(__name__)

EventsCallback = Callable[[list[Event]], None]


class Subscription:
    """Handle for a live list. Call ``cancel()`` when the list is no longer shown."""

    def __init__(self, on_cancel: Callable[[], None] | None = None):
        self._on_cancel = on_cancel
        self._active = on_cancel is not None
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        """Stop deliveries. Safe to call more than once."""
        with self._lock:
            if not self._active:
                return
            self._active = False
            on_cancel, self._on_cancel = self._on_cancel, None
        if on_cancel:
            on_cancel()


class LiveQuery:
    """
    Re-run a list query after every store write and deliver the result.

    A failing query delivers an empty list and logs a warning instead of
    raising, so list views always have something to show.
    """

    def __init__(self, name: str, query: Callable[[], list[Event]], callback: EventsCallback):
        self.name = name
        self.query = query
        self.callback = callback
        self._lock = threading.Lock()

    def refresh(self, _doc_id: str | None = None) -> None:
        with self._lock:
            try:
                events = self.query()
            except Exception as e:
                logger.warning(f"Error fetching {self.name}: {e}")
                events = []
            self.callback(events)

    def start(self, add_listener: Callable[[Callable[[str], None]], Callable[[], None]]) -> Subscription:
        """Deliver the current result, then follow store changes."""
        remove = add_listener(self.refresh)
        self.refresh()
        return Subscription(on_cancel=remove)
