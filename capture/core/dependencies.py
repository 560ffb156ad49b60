"""FastAPI dependencies wiring stores, identity and the event gateway."""
from fastapi import Depends

from capture.core.config import settings
from capture.core.database import engine
from capture.core.identity import IdentityProvider, get_identity
from capture.events.gateway import EventGateway
from capture.storage.blobs import BlobStore, GoogleCloudBlobStore
from capture.storage.documents import DocumentStore

# One store per process so every live list hears every write
_document_store: DocumentStore | None = None


def get_document_store() -> DocumentStore:
    """Dependency for the event document store."""
    global _document_store
    if _document_store is None:
        _document_store = DocumentStore(engine)
    return _document_store


def get_blob_store() -> BlobStore:
    """Dependency for the image blob store."""
    return GoogleCloudBlobStore(settings.storage_bucket)


def get_gateway(
    store: DocumentStore = Depends(get_document_store),
    blobs: BlobStore = Depends(get_blob_store),
    identity: IdentityProvider = Depends(get_identity),
) -> EventGateway:
    """Dependency for an event gateway acting as the current caller."""
    return EventGateway(store, blobs, identity)
