#!/usr/bin/env python3
"""
One-off script to end every active event whose end date has passed.

The running service does this on a schedule; this script runs the same sweep
once, for example after downtime.

Usage:
    python scripts/end_expired_events.py [--dry-run]

Options:
    --dry-run    Show which events would be ended without changing them
"""
import sys
from datetime import UTC, datetime

from capture.core.database import create_db_and_tables, engine
from capture.events.expiry import end_expired_events, find_expired_events
from capture.storage.documents import DocumentStore


def main(dry_run: bool = False):
    """List expired events and end them."""
    create_db_and_tables()
    store = DocumentStore(engine)
    now = datetime.now(UTC)

    expired = find_expired_events(store, now)
    if not expired:
        print("No expired events found.")
        return

    print(f"Found {len(expired)} expired event(s):\n")
    for document in expired:
        print(f"{document['event_name'] or '(unnamed)'}")
        print(f"  ID:       {document['id']}")
        print(f"  Host:     {document['creator_id']}")
        print(f"  Ended at: {document['end_date'].isoformat()}")
        print()

    if dry_run:
        print("--- DRY RUN: No changes made ---")
        return

    response = input(f"End {len(expired)} event(s)? [y/N]: ")
    if response.lower() != "y":
        print("Aborted.")
        return

    stats = end_expired_events(store, now)
    print(f"\nComplete: {stats['ended']} ended, {stats['missing']} no longer present")


if __name__ == "__main__":
    dry_run = "--dry-run" in sys.argv
    main(dry_run=dry_run)
