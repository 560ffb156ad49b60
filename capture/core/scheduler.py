"""Background job scheduler for ending expired events."""
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from capture.core.config import settings
from capture.core.database import engine
from capture.events.expiry import end_expired_events
from capture.storage.documents import DocumentStore

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


def expiry_job(store: DocumentStore | None = None):
    """Background expiry sweep."""
    try:
        stats = end_expired_events(store or DocumentStore(engine))
        logger.info(f"Background expiry completed: {stats}")
    except Exception as e:
        logger.error(f"Background expiry failed: {e}")


def start_scheduler(store: DocumentStore | None = None):
    """Start the background scheduler."""
    scheduler.add_job(
        expiry_job,
        trigger=IntervalTrigger(minutes=settings.expiry_interval_minutes),
        kwargs={"store": store},
        id="event_expiry",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        f"Scheduler started, ending expired events every {settings.expiry_interval_minutes} minutes"
    )


def shutdown_scheduler():
    """Graceful shutdown."""
    scheduler.shutdown(wait=False)
    logger.info("Scheduler shut down")
