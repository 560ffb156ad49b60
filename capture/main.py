"""Capture event service."""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from capture.core.config import settings
from capture.core.database import create_db_and_tables
from capture.core.dependencies import get_document_store
from capture.core.scheduler import shutdown_scheduler, start_scheduler
from capture.routes import drafts, events
from capture.storage.client import storage_configured

# Configure logging
log_dir = Path.home() / ".logs" / "capture"
log_dir.mkdir(parents=True, exist_ok=True)
log_file = log_dir / "latest.log"

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    filename=str(log_file),
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown lifecycle."""
    # Startup
    logger.info("Starting Capture application")
    create_db_and_tables()
    if not storage_configured():
        logger.warning("Cloud Storage not configured; image uploads will fail")
    start_scheduler(get_document_store())
    yield
    # Shutdown
    for session in app.state.drafts.values():
        session.coordinator.close()
    app.state.drafts.clear()
    shutdown_scheduler()
    logger.info("Capture application shut down")


app = FastAPI(
    title=settings.app_name,
    description="Create and manage hosted photo events",
    version="0.1.0",
    lifespan=lifespan,
)
app.state.drafts = {}

# Configure CORS for the mobile and web clients
origins = (
    ["*"]
    if settings.allowed_origins == "*"
    else [o.strip() for o in settings.allowed_origins.split(",")]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(events.router)
app.include_router(drafts.router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "app": settings.app_name}
