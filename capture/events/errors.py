"""Failures raised by the event gateway and draft coordinator."""


class EventError(Exception):
    """Base class for event management failures.

    ``message`` is the human-readable cause shown to the user.
    """

    default_message = "Event operation failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(EventError):
    default_message = "User not logged in"


class Unauthorized(EventError):
    default_message = "Not authorized to modify this event"


class NotFound(EventError):
    default_message = "Event not found"


class EncodingFailed(EventError):
    default_message = "Could not convert image to data"


class StorageFailed(EventError):
    default_message = "Failed to store image"


class ReferenceUnavailable(EventError):
    default_message = "Failed to get download URL"


class TransportFailure(EventError):
    default_message = "Event store unavailable"


class NoLoadedEvent(EventError):
    default_message = "No event loaded for editing"
