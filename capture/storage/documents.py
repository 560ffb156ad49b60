"""Event document collection persisted through SQLModel.

The store speaks in documents: plain dicts keyed by wire field name and
addressed by document id. It supports the writes the gateway needs (full
``set``, partial ``merge``, ``array_union`` on participants), the ordered
queries behind the hosted and participating lists, and change listeners so
live queries can re-run after every committed write.
"""
import logging
import threading
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from capture.models import EventDocument, EventParticipant

logger = logging.getLogger(__name__)

COLUMN_FIELDS = (
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
)
NULLABLE_FIELDS = {"end_date"}
ARRAY_FIELDS = {"participants"}


class DocumentNotFound(KeyError):
    """Raised when a write targets a document that does not exist."""


class DocumentStore:
    """The ``events`` collection.

    Every method opens its own session and commits before returning, so
    callers see last-write-wins semantics across overlapping writes.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._listeners: list[Callable[[str], None]] = []
        self._listeners_lock = threading.Lock()

    # Reads

    def get(self, doc_id: str) -> dict | None:
        """Return the document stored under ``doc_id``, or None."""
        with Session(self.engine) as session:
            row = session.get(EventDocument, doc_id)
            return _to_document(row) if row else None

    def where_creator(self, creator_id: str) -> list[tuple[str, dict]]:
        """Documents created by ``creator_id``, most recent first."""
        statement = (
            select(EventDocument)
            .where(EventDocument.creator_id == creator_id)
            .order_by(EventDocument.created_at.desc(), EventDocument.id)
        )
        return self._query(statement)

    def where_participant(self, user_id: str) -> list[tuple[str, dict]]:
        """Documents whose participants contain ``user_id``, most recent first."""
        statement = (
            select(EventDocument)
            .join(EventParticipant)
            .where(EventParticipant.user_id == user_id)
            .order_by(EventDocument.created_at.desc(), EventDocument.id)
        )
        return self._query(statement)

    def where_expired(self, now: datetime) -> list[tuple[str, dict]]:
        """Active documents whose end date is before ``now``."""
        statement = (
            select(EventDocument)
            .where(EventDocument.status == "active")
            .where(EventDocument.end_date.is_not(None))
            .where(EventDocument.end_date < _to_storage(now))
            .order_by(EventDocument.end_date)
        )
        return self._query(statement)

    def _query(self, statement) -> list[tuple[str, dict]]:
        with Session(self.engine) as session:
            rows = session.exec(statement).all()
            return [(row.id, _to_document(row)) for row in rows]

    # Writes

    def set(self, doc_id: str, data: dict) -> None:
        """Write ``data`` as the whole document, replacing any previous one.

        Fields absent from ``data`` take their column defaults.
        """
        fresh = EventDocument(id=doc_id, **_columns(data))
        with Session(self.engine) as session:
            row = session.get(EventDocument, doc_id)
            if row is None:
                row = fresh
            else:
                for field in COLUMN_FIELDS:
                    setattr(row, field, getattr(fresh, field))
            _replace_participants(row, data.get("participants") or [])
            session.add(row)
            session.commit()

        logger.debug(f"Set document {doc_id}")
        self._notify(doc_id)

    def merge(self, doc_id: str, data: dict) -> None:
        """Update only the fields present in ``data``.

        Raises DocumentNotFound if there is no document to update.
        """
        with Session(self.engine) as session:
            row = session.get(EventDocument, doc_id)
            if row is None:
                raise DocumentNotFound(doc_id)

            for field, value in _columns(data).items():
                setattr(row, field, value)
            if "participants" in data:
                _replace_participants(row, data["participants"] or [])

            session.add(row)
            session.commit()

        logger.debug(f"Merged {sorted(data)} into document {doc_id}")
        self._notify(doc_id)

    def array_union(self, doc_id: str, field: str, values: Iterable[str]) -> None:
        """Add each of ``values`` to the array ``field`` unless already present."""
        if field not in ARRAY_FIELDS:
            raise ValueError(f"{field} is not an array field")

        with Session(self.engine) as session:
            row = session.get(EventDocument, doc_id)
            if row is None:
                raise DocumentNotFound(doc_id)

            present = {p.user_id for p in row.participant_rows}
            for user_id in dict.fromkeys(values):
                if user_id not in present:
                    row.participant_rows.append(EventParticipant(user_id=user_id))
            session.add(row)
            try:
                session.commit()
            except IntegrityError:
                # Another writer added the same participant first
                session.rollback()
                logger.debug(f"Participant already present on {doc_id}")

        self._notify(doc_id)

    # Change listeners

    def add_listener(self, callback: Callable[[str], None]) -> Callable[[], None]:
        """Call ``callback(doc_id)`` after every write. Returns a remover."""
        with self._listeners_lock:
            self._listeners.append(callback)

        def remove():
            with self._listeners_lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return remove

    def _notify(self, doc_id: str) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(doc_id)
            except Exception:
                # The write is already committed; one bad listener must not hide it
                logger.exception(f"Document listener failed for {doc_id}")


def _columns(data: dict) -> dict:
    """Column values present in ``data``, converted for storage."""
    columns = {}
    for field in COLUMN_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if value is None and field not in NULLABLE_FIELDS:
            continue
        if isinstance(value, datetime):
            value = _to_storage(value)
        columns[field] = value
    return columns


def _replace_participants(row: EventDocument, user_ids: Iterable[str]) -> None:
    """Make the participant rows match ``user_ids`` without re-inserting kept ones."""
    wanted = list(dict.fromkeys(user_ids))
    existing = {p.user_id: p for p in row.participant_rows}
    row.participant_rows = [
        existing.get(user_id) or EventParticipant(user_id=user_id) for user_id in wanted
    ]


def _to_document(row: EventDocument) -> dict:
    document = {"id": row.id}
    for field in COLUMN_FIELDS:
        value = getattr(row, field)
        if isinstance(value, datetime):
            value = _from_storage(value)
        document[field] = value
    document["participants"] = [p.user_id for p in row.participant_rows]
    return document


def _to_storage(value: datetime) -> datetime:
    """Timestamps are stored as aware UTC; naive input is read as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _from_storage(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
