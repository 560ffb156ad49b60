"""Database configuration and session management for the event document store.

Event documents are kept in SQLite through SQLModel. The engine is configured
for a web application: WAL mode for concurrent access and foreign key
enforcement for participant rows.

SQLite Configuration Choices:
    - **WAL (Write-Ahead Logging)**: Allows concurrent readers while writing.
      The expiry sweep writes in the background while list views read.

    - **Foreign Keys**: Disabled by default in SQLite. Enabled so participant
      rows always reference an existing event document.

    - **check_same_thread=False**: Sessions may be opened from request
      handlers, the scheduler, and worker threads.
"""

from sqlalchemy import event as sa_event
from sqlmodel import SQLModel, create_engine

from capture.core.config import settings

connect_args = {"check_same_thread": False}

engine = create_engine(
    settings.database_url,
    connect_args=connect_args,
    echo=settings.debug,  # Log SQL statements when DEBUG=true
)


@sa_event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Configure SQLite pragmas on each new connection.

    These settings are connection-level, not database-level, so they must
    be set each time a new connection is established from the pool.
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_and_tables():
    """Create all database tables."""
    SQLModel.metadata.create_all(engine)
