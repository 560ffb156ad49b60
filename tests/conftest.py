"""Shared test fixtures."""

import io
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials
from fastapi.testclient import TestClient
from PIL import Image
from sqlmodel import SQLModel, create_engine
from sqlmodel.pool import StaticPool

from capture.core.dependencies import get_blob_store, get_document_store
from capture.core.identity import StaticIdentity, get_identity, security
from capture.events.codec import event_to_document
from capture.events.gateway import EventGateway
from capture.main import app
from capture.models import Event
from capture.storage.blobs import public_url
from capture.storage.documents import DocumentStore

HOST_ID = "host-1"
GUEST_ID = "guest-1"


class InMemoryBlobStore:
    """Blob store double keeping uploads in a dict."""

    def __init__(self, bucket: str = "test-bucket"):
        self.bucket = bucket
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.error: Exception | None = None
        self.return_url = True

    def put(self, path: str, payload: bytes, content_type: str) -> str | None:
        if self.error:
            raise self.error
        self.objects[path] = (payload, content_type)
        if not self.return_url:
            return None
        return public_url(self.bucket, path)


def make_event(**overrides) -> Event:
    """Build an event with sensible test values."""
    fields = {
        "id": str(uuid4()),
        "event_name": "Birthday",
        "title": "Take a Photo!",
        "subtitle": "Smile",
        "button_text": "Take Photos",
        "creator_id": HOST_ID,
        "end_date": datetime.now(UTC) + timedelta(days=1),
        "created_at": datetime.now(UTC),
    }
    fields.update(overrides)
    return Event(**fields)


def image_bytes(fmt: str = "PNG", mode: str = "RGBA") -> bytes:
    """A small in-memory image."""
    output = io.BytesIO()
    Image.new(mode, (8, 8), (255, 0, 0, 128) if mode == "RGBA" else (255, 0, 0)).save(
        output, format=fmt
    )
    return output.getvalue()


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="store")
def store_fixture(engine) -> DocumentStore:
    """Create a document store on the test database."""
    return DocumentStore(engine)


@pytest.fixture(name="blobs")
def blobs_fixture() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture(name="gateway")
def gateway_fixture(store: DocumentStore, blobs: InMemoryBlobStore) -> EventGateway:
    """Gateway acting as the host."""
    return EventGateway(store, blobs, StaticIdentity(HOST_ID))


@pytest.fixture(name="guest_gateway")
def guest_gateway_fixture(store: DocumentStore, blobs: InMemoryBlobStore) -> EventGateway:
    """Gateway acting as a guest who does not own any event."""
    return EventGateway(store, blobs, StaticIdentity(GUEST_ID))


@pytest.fixture(name="anonymous_gateway")
def anonymous_gateway_fixture(store: DocumentStore, blobs: InMemoryBlobStore) -> EventGateway:
    """Gateway with no signed-in user."""
    return EventGateway(store, blobs, StaticIdentity(None))


@pytest.fixture(name="sample_event")
def sample_event_fixture(store: DocumentStore) -> Event:
    """Store an event hosted by HOST_ID."""
    event = make_event()
    store.set(event.id, event_to_document(event))
    return event


@pytest.fixture(name="ended_event")
def ended_event_fixture(store: DocumentStore) -> Event:
    """Store an event that has already ended."""
    event = make_event(event_name="Last Week", status="ended")
    store.set(event.id, event_to_document(event))
    return event


@pytest.fixture(name="client")
def client_fixture(store: DocumentStore, blobs: InMemoryBlobStore):
    """Create a test client on the test stores.

    The bearer token is taken as the user id, so tests sign in with
    ``headers={"Authorization": "Bearer host-1"}``.
    """

    def get_identity_override(
        creds: HTTPAuthorizationCredentials | None = Depends(security),
    ):
        return StaticIdentity(creds.credentials if creds else None)

    app.dependency_overrides[get_document_store] = lambda: store
    app.dependency_overrides[get_blob_store] = lambda: blobs
    app.dependency_overrides[get_identity] = get_identity_override
    app.state.drafts = {}
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
    app.state.drafts = {}
