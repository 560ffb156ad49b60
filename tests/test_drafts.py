"""Tests for the draft coordinator."""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from capture.core.identity import StaticIdentity
from capture.events.codec import event_to_document
from capture.events.drafts import (
    Draft,
    DraftCoordinator,
    Error,
    Idle,
    Loading,
    Success,
    state_name,
)
from capture.events.errors import NoLoadedEvent
from capture.events.gateway import EventGateway
from capture.models import Event
from capture.storage.documents import DocumentStore

from conftest import HOST_ID, InMemoryBlobStore, image_bytes, make_event


class GatedGateway(EventGateway):
    """Gateway whose writes wait until the test opens the gate."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.gate = asyncio.Event()
        self.calls: list[str] = []

    async def create(self, event, media=None):
        self.calls.append("create")
        await self.gate.wait()
        return await super().create(event, media)

    async def upload_image(self, event_id, media):
        self.calls.append("upload_image")
        return await super().upload_image(event_id, media)

    async def update(self, event):
        self.calls.append(f"update:{event.background_image_url}")
        await self.gate.wait()
        return await super().update(event)


class FailingGateway(EventGateway):
    """Gateway whose writes always fail."""

    async def create(self, event, media=None):
        raise RuntimeError("boom")

    async def update(self, event):
        raise RuntimeError("boom")


@pytest.fixture(name="gated_gateway")
def gated_gateway_fixture(store: DocumentStore, blobs: InMemoryBlobStore) -> GatedGateway:
    return GatedGateway(store, blobs, StaticIdentity(HOST_ID))


@pytest.fixture(name="coordinator")
def coordinator_fixture(gateway: EventGateway):
    coordinator = DraftCoordinator(gateway)
    yield coordinator
    coordinator.close()


class TestDraft:
    def test_defaults(self):
        before = datetime.now(UTC)
        draft = Draft()

        assert draft.event_name == "My Event"
        assert draft.title == "Take a Photo!"
        assert draft.subtitle == ""
        assert draft.button_text == "Take Photos"
        assert draft.reveal_photos_timing == "Immediately"
        assert draft.photos_per_person == 10
        assert draft.max_guests == 10
        assert draft.gallery_access is True
        assert draft.staged_image is None
        assert draft.existing_background_image_url == ""
        assert before + timedelta(days=7) <= draft.end_date <= datetime.now(UTC) + timedelta(days=7)

    def test_from_event(self):
        event = make_event(
            event_name="Wedding",
            max_guests=50,
            background_image_url="https://example.com/a.jpg",
        )
        draft = Draft.from_event(event)

        assert draft.event_name == "Wedding"
        assert draft.max_guests == 50
        assert draft.end_date == event.end_date
        assert draft.existing_background_image_url == "https://example.com/a.jpg"
        assert draft.staged_image is None

    def test_from_event_without_end_date(self):
        draft = Draft.from_event(make_event(end_date=None))
        assert draft.end_date > datetime.now(UTC)


class TestSetters:
    def test_setters_update_draft(self, coordinator: DraftCoordinator):
        end_date = datetime(2030, 1, 1, tzinfo=UTC)

        coordinator.set_event_name("Party")
        coordinator.set_title("Say cheese")
        coordinator.set_subtitle("Sub")
        coordinator.set_button_text("Go")
        coordinator.set_reveal_photos_timing("12 hours after")
        coordinator.set_photos_per_person(3)
        coordinator.set_max_guests(20)
        coordinator.set_gallery_access(False)
        coordinator.set_end_date(end_date)
        coordinator.stage_image(b"raw")

        draft = coordinator.draft
        assert draft.event_name == "Party"
        assert draft.title == "Say cheese"
        assert draft.subtitle == "Sub"
        assert draft.button_text == "Go"
        assert draft.reveal_photos_timing == "12 hours after"
        assert draft.photos_per_person == 3
        assert draft.max_guests == 20
        assert draft.gallery_access is False
        assert draft.end_date == end_date
        assert draft.staged_image == b"raw"
        assert coordinator.state == Idle()

    def test_load_from_existing(self, coordinator: DraftCoordinator, sample_event: Event):
        coordinator.set_title("Unsaved")

        coordinator.load_from_existing(sample_event)

        assert coordinator.loaded_event == sample_event
        assert coordinator.draft.title == sample_event.title
        assert coordinator.state == Idle()

    def test_reset(self, coordinator: DraftCoordinator, sample_event: Event):
        coordinator.load_from_existing(sample_event)
        coordinator.reset()

        assert coordinator.loaded_event is None
        assert coordinator.draft.event_name == "My Event"


class TestProgressState:
    def test_names(self):
        assert [state_name(s) for s in (Idle(), Loading(), Success(), Error("x"))] == [
            "idle",
            "loading",
            "success",
            "error",
        ]

    def test_errors_compare_by_message(self):
        assert Error("boom") == Error("boom")
        assert Error("boom") != Error("bang")


class TestCommitCreate:
    @pytest.mark.asyncio
    async def test_loading_then_success(
        self, coordinator: DraftCoordinator, store: DocumentStore
    ):
        seen = []
        coordinator.observe(seen.append)
        coordinator.set_event_name("Party")

        task = coordinator.commit_create()
        assert coordinator.state == Loading()
        await task

        assert coordinator.state == Success()
        assert seen == [Loading(), Success()]
        created = coordinator.loaded_event
        document = store.get(created.id)
        assert document["event_name"] == "Party"
        assert document["creator_id"] == HOST_ID
        assert document["status"] == "active"

    @pytest.mark.asyncio
    async def test_refreshes_lists_after_success(self, coordinator: DraftCoordinator):
        await coordinator.commit_create()

        assert [e.id for e in coordinator.hosted_events] == [coordinator.loaded_event.id]
        assert coordinator.participating_events == []

    @pytest.mark.asyncio
    async def test_staged_image_is_uploaded(
        self, coordinator: DraftCoordinator, blobs: InMemoryBlobStore
    ):
        coordinator.stage_image(image_bytes())

        await coordinator.commit_create()

        assert coordinator.state == Success()
        path = next(iter(blobs.objects))
        assert coordinator.loaded_event.background_image_url.endswith(path)

    @pytest.mark.asyncio
    async def test_signed_out_caller(self, anonymous_gateway: EventGateway):
        coordinator = DraftCoordinator(anonymous_gateway)

        await coordinator.commit_create()

        assert coordinator.state == Error("User not logged in")

    @pytest.mark.asyncio
    async def test_failure_message(self, store: DocumentStore, blobs: InMemoryBlobStore):
        coordinator = DraftCoordinator(FailingGateway(store, blobs, StaticIdentity(HOST_ID)))

        await coordinator.commit_create()

        assert coordinator.state == Error("boom")
        assert coordinator.loaded_event is None

    @pytest.mark.asyncio
    async def test_retry_after_error(self, store: DocumentStore, blobs: InMemoryBlobStore):
        failing = FailingGateway(store, blobs, StaticIdentity(HOST_ID))
        coordinator = DraftCoordinator(failing)
        await coordinator.commit_create()
        assert isinstance(coordinator.state, Error)

        coordinator.gateway = EventGateway(store, blobs, StaticIdentity(HOST_ID))
        await coordinator.commit_create()

        assert coordinator.state == Success()
        coordinator.close()

    @pytest.mark.asyncio
    async def test_commit_while_loading_is_ignored(
        self, gated_gateway: GatedGateway, store: DocumentStore
    ):
        coordinator = DraftCoordinator(gated_gateway)

        first = coordinator.commit_create()
        second = coordinator.commit_create()
        assert second is None
        assert coordinator.state == Loading()

        gated_gateway.gate.set()
        await first

        assert gated_gateway.calls == ["create"]
        assert len(store.where_creator(HOST_ID)) == 1
        coordinator.close()


class TestCommitUpdate:
    def test_without_loaded_event(self, coordinator: DraftCoordinator):
        with pytest.raises(NoLoadedEvent):
            coordinator.commit_update("any")
        assert coordinator.state == Idle()

    def test_with_other_event_id(self, coordinator: DraftCoordinator, sample_event: Event):
        coordinator.load_from_existing(sample_event)

        with pytest.raises(NoLoadedEvent):
            coordinator.commit_update("another-event")
        assert coordinator.state == Idle()

    @pytest.mark.asyncio
    async def test_writes_draft_fields(
        self, coordinator: DraftCoordinator, store: DocumentStore, sample_event: Event
    ):
        coordinator.load_from_existing(sample_event)
        coordinator.set_title("Updated")
        coordinator.set_max_guests(42)

        await coordinator.commit_update(sample_event.id)

        assert coordinator.state == Success()
        document = store.get(sample_event.id)
        assert document["title"] == "Updated"
        assert document["max_guests"] == 42
        assert document["creator_id"] == HOST_ID

    @pytest.mark.asyncio
    async def test_keeps_existing_image_without_staged_one(
        self, coordinator: DraftCoordinator, store: DocumentStore, blobs: InMemoryBlobStore
    ):
        event = make_event(background_image_url="https://example.com/old.jpg")
        store.set(event.id, event_to_document(event))
        coordinator.load_from_existing(event)

        await coordinator.commit_update(event.id)

        assert store.get(event.id)["background_image_url"] == "https://example.com/old.jpg"
        assert blobs.objects == {}

    @pytest.mark.asyncio
    async def test_uploads_before_write(
        self,
        gated_gateway: GatedGateway,
        store: DocumentStore,
        blobs: InMemoryBlobStore,
        sample_event: Event,
    ):
        coordinator = DraftCoordinator(gated_gateway)
        coordinator.load_from_existing(sample_event)
        coordinator.stage_image(image_bytes())

        task = coordinator.commit_update(sample_event.id)
        assert coordinator.commit_update(sample_event.id) is None
        gated_gateway.gate.set()
        await task

        path = next(iter(blobs.objects))
        new_url = store.get(sample_event.id)["background_image_url"]
        assert new_url.endswith(path)
        assert gated_gateway.calls == ["upload_image", f"update:{new_url}"]
        assert coordinator.draft.staged_image is None
        assert coordinator.draft.existing_background_image_url == new_url
        coordinator.close()

    @pytest.mark.asyncio
    async def test_upload_failure(
        self,
        coordinator: DraftCoordinator,
        store: DocumentStore,
        blobs: InMemoryBlobStore,
        sample_event: Event,
    ):
        blobs.error = OSError("connection reset")
        coordinator.load_from_existing(sample_event)
        coordinator.set_title("Never saved")
        coordinator.stage_image(image_bytes())

        await coordinator.commit_update(sample_event.id)

        assert coordinator.state == Error("connection reset")
        assert store.get(sample_event.id)["title"] == sample_event.title
        assert coordinator.draft.staged_image is not None

    @pytest.mark.asyncio
    async def test_write_failure(
        self, store: DocumentStore, blobs: InMemoryBlobStore, sample_event: Event
    ):
        coordinator = DraftCoordinator(FailingGateway(store, blobs, StaticIdentity(HOST_ID)))
        coordinator.load_from_existing(sample_event)

        await coordinator.commit_update(sample_event.id)

        assert coordinator.state == Error("boom")


class TestEventLists:
    def test_load_events_replaces_subscriptions(
        self, coordinator: DraftCoordinator, store: DocumentStore, sample_event: Event
    ):
        coordinator.load_events()
        coordinator.load_events()

        assert len(store._listeners) == 2
        assert [e.id for e in coordinator.hosted_events] == [sample_event.id]

    def test_close_cancels_subscriptions(
        self, coordinator: DraftCoordinator, store: DocumentStore
    ):
        coordinator.load_events()
        coordinator.close()
        coordinator.close()

        assert store._listeners == []

    def test_lists_follow_store(
        self, coordinator: DraftCoordinator, store: DocumentStore, sample_event: Event
    ):
        coordinator.load_events()
        store.array_union(sample_event.id, "participants", [HOST_ID])

        assert [e.id for e in coordinator.participating_events] == [sample_event.id]


class TestStagedImageLifecycle:
    @pytest.mark.asyncio
    async def test_create_settles_staged_image(
        self, coordinator: DraftCoordinator, store: DocumentStore, blobs: InMemoryBlobStore
    ):
        coordinator.stage_image(image_bytes())
        await coordinator.commit_create()
        created = coordinator.loaded_event

        assert coordinator.draft.staged_image is None
        assert coordinator.draft.existing_background_image_url == created.background_image_url

        coordinator.set_title("Edited")
        await coordinator.commit_update(created.id)

        assert coordinator.state == Success()
        assert len(blobs.objects) == 1
        document = store.get(created.id)
        assert document["title"] == "Edited"
        assert document["background_image_url"] == created.background_image_url

    @pytest.mark.asyncio
    async def test_edits_during_update_wait_for_next_commit(
        self,
        gated_gateway: GatedGateway,
        store: DocumentStore,
        blobs: InMemoryBlobStore,
        sample_event: Event,
    ):
        coordinator = DraftCoordinator(gated_gateway)
        coordinator.load_from_existing(sample_event)
        first_image = image_bytes("PNG", "RGBA")
        second_image = image_bytes("JPEG", "RGB")
        coordinator.set_title("First")
        coordinator.stage_image(first_image)

        task = coordinator.commit_update(sample_event.id)
        coordinator.set_title("Second")
        coordinator.stage_image(second_image)
        gated_gateway.gate.set()
        await task

        assert coordinator.state == Success()
        assert len(blobs.objects) == 1
        assert store.get(sample_event.id)["title"] == "First"
        assert coordinator.draft.title == "Second"
        assert coordinator.draft.staged_image is second_image

        await coordinator.commit_update(sample_event.id)

        assert len(blobs.objects) == 2
        assert store.get(sample_event.id)["title"] == "Second"
        assert coordinator.draft.staged_image is None
        coordinator.close()
