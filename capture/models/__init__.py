from capture.models.document import EventDocument, EventParticipant
from capture.models.event import Event

__all__ = ["Event", "EventDocument", "EventParticipant"]
