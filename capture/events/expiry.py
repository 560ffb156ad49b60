"""End events whose end date has passed."""
import logging
from datetime import UTC, datetime

from capture.models.event import STATUS_ENDED
from capture.storage.documents import DocumentNotFound, DocumentStore

logger = logging.getLogger(__name__)


def find_expired_events(store: DocumentStore, now: datetime | None = None) -> list[dict]:
    """Active event documents whose end date is before ``now``."""
    now = now or datetime.now(UTC)
    return [document for _, document in store.where_expired(now)]


def end_expired_events(store: DocumentStore, now: datetime | None = None) -> dict:
    """
    Mark every expired active event as ended.

    This is a maintenance sweep run by the scheduler, not a user action, so
    it writes to the store directly instead of through the owner-checked
    gateway. It only ever moves status from "active" to "ended".

    Returns dict with sweep statistics.
    """
    stats = {"ended": 0, "missing": 0}

    for document in find_expired_events(store, now):
        try:
            store.merge(document["id"], {"status": STATUS_ENDED})
        except DocumentNotFound:
            stats["missing"] += 1
            continue
        stats["ended"] += 1
        logger.info(f"Ended expired event: {document['event_name']} ({document['id']})")

    logger.info(f"Expiry sweep completed: {stats}")
    return stats
