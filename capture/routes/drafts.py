"""Draft routes for editing an event across several requests.

A draft session wraps one DraftCoordinator: open it (empty, or from an
existing event), patch fields, stage an image, then commit. Sessions belong
to the user who opened them.
"""
from datetime import datetime
from uuid import uuid4

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from sqlmodel import Field, SQLModel

from capture.core.dependencies import get_gateway
from capture.events.drafts import DraftCoordinator, Error, state_name
from capture.events.errors import EventError, Unauthenticated, Unauthorized
from capture.events.gateway import EventGateway
from capture.routes.errors import http_error
from capture.routes.events import RevealTiming

router = APIRouter(prefix="/drafts", tags=["drafts"])


class DraftSession:
    """One open draft and the user it belongs to."""

    def __init__(self, owner_id: str, coordinator: DraftCoordinator):
        self.owner_id = owner_id
        self.coordinator = coordinator


class DraftOpen(SQLModel):
    event_id: str | None = None


class DraftPatch(SQLModel):
    event_name: str | None = None
    title: str | None = None
    subtitle: str | None = None
    button_text: str | None = None
    end_date: datetime | None = None
    reveal_photos_timing: RevealTiming | None = None
    photos_per_person: int | None = Field(default=None, gt=0)
    max_guests: int | None = Field(default=None, gt=0)
    gallery_access: bool | None = None


class DraftRead(SQLModel):
    id: str
    event_id: str | None
    state: str
    error: str | None = None
    event_name: str
    title: str
    subtitle: str
    button_text: str
    end_date: datetime | None
    reveal_photos_timing: str
    photos_per_person: int
    max_guests: int
    gallery_access: bool
    background_image_url: str
    has_staged_image: bool


SETTERS = {
    "event_name": DraftCoordinator.set_event_name,
    "title": DraftCoordinator.set_title,
    "subtitle": DraftCoordinator.set_subtitle,
    "button_text": DraftCoordinator.set_button_text,
    "end_date": DraftCoordinator.set_end_date,
    "reveal_photos_timing": DraftCoordinator.set_reveal_photos_timing,
    "photos_per_person": DraftCoordinator.set_photos_per_person,
    "max_guests": DraftCoordinator.set_max_guests,
    "gallery_access": DraftCoordinator.set_gallery_access,
}


def get_draft_sessions(request: Request) -> dict[str, DraftSession]:
    """Dependency for the open draft sessions of this application."""
    return request.app.state.drafts


def to_read(draft_id: str, coordinator: DraftCoordinator) -> DraftRead:
    draft = coordinator.draft
    state = coordinator.state
    return DraftRead(
        id=draft_id,
        event_id=coordinator.loaded_event.id if coordinator.loaded_event else None,
        state=state_name(state),
        error=state.message if isinstance(state, Error) else None,
        event_name=draft.event_name,
        title=draft.title,
        subtitle=draft.subtitle,
        button_text=draft.button_text,
        end_date=draft.end_date,
        reveal_photos_timing=draft.reveal_photos_timing,
        photos_per_person=draft.photos_per_person,
        max_guests=draft.max_guests,
        gallery_access=draft.gallery_access,
        background_image_url=draft.existing_background_image_url,
        has_staged_image=draft.staged_image is not None,
    )


def find_session(
    draft_id: str,
    gateway: EventGateway,
    sessions: dict[str, DraftSession],
) -> DraftSession:
    """The caller's draft session, or 404."""
    session = sessions.get(draft_id)
    if not session or session.owner_id != gateway.current_user_id():
        raise HTTPException(status_code=404, detail="Draft not found")
    return session


@router.post("", status_code=201, response_model=DraftRead)
async def open_draft(
    body: DraftOpen,
    gateway: EventGateway = Depends(get_gateway),
    sessions: dict[str, DraftSession] = Depends(get_draft_sessions),
):
    """
    Open a draft session.

    With an ``event_id`` the draft starts from that event, which the caller
    must host. Without one it starts from the defaults for a new event.
    """
    owner_id = gateway.current_user_id()
    if not owner_id:
        raise http_error(Unauthenticated())

    coordinator = DraftCoordinator(gateway)
    if body.event_id:
        try:
            event = await gateway.get(body.event_id)
        except EventError as e:
            raise http_error(e) from e
        if event.creator_id != owner_id:
            raise http_error(Unauthorized("Not authorized to edit this event"))
        coordinator.load_from_existing(event)

    draft_id = str(uuid4())
    sessions[draft_id] = DraftSession(owner_id, coordinator)
    return to_read(draft_id, coordinator)


@router.get("/{draft_id}", response_model=DraftRead)
async def draft_detail(
    draft_id: str,
    gateway: EventGateway = Depends(get_gateway),
    sessions: dict[str, DraftSession] = Depends(get_draft_sessions),
):
    """Draft fields and the progress of its last commit."""
    session = find_session(draft_id, gateway, sessions)
    return to_read(draft_id, session.coordinator)


@router.patch("/{draft_id}", response_model=DraftRead)
async def edit_draft(
    draft_id: str,
    patch: DraftPatch,
    gateway: EventGateway = Depends(get_gateway),
    sessions: dict[str, DraftSession] = Depends(get_draft_sessions),
):
    """Change the given draft fields. Nothing is saved until commit."""
    session = find_session(draft_id, gateway, sessions)
    for field, value in patch.model_dump(exclude_unset=True).items():
        if value is not None:
            SETTERS[field](session.coordinator, value)
    return to_read(draft_id, session.coordinator)


@router.put("/{draft_id}/image", response_model=DraftRead)
async def stage_draft_image(
    draft_id: str,
    image: UploadFile = File(...),
    gateway: EventGateway = Depends(get_gateway),
    sessions: dict[str, DraftSession] = Depends(get_draft_sessions),
):
    """Stage a new background image, uploaded when the draft is committed."""
    session = find_session(draft_id, gateway, sessions)
    session.coordinator.stage_image(await image.read())
    return to_read(draft_id, session.coordinator)


@router.post("/{draft_id}/commit", response_model=DraftRead)
async def commit_draft(
    draft_id: str,
    gateway: EventGateway = Depends(get_gateway),
    sessions: dict[str, DraftSession] = Depends(get_draft_sessions),
):
    """
    Save the draft.

    Creates the event on first commit and updates it afterwards. Responds
    once the commit has finished; a failed commit is reported in ``state``
    and ``error`` and may be retried. Returns 409 while another commit for
    the same draft is still running.
    """
    session = find_session(draft_id, gateway, sessions)
    coordinator = session.coordinator

    try:
        if coordinator.loaded_event is None:
            task = coordinator.commit_create()
        else:
            task = coordinator.commit_update(coordinator.loaded_event.id)
    except EventError as e:
        raise http_error(e) from e

    if task is None:
        raise HTTPException(status_code=409, detail="A commit is already in progress")
    await task
    # Draft sessions never show the event lists
    coordinator.close()
    return to_read(draft_id, coordinator)


@router.delete("/{draft_id}", status_code=204)
async def discard_draft(
    draft_id: str,
    gateway: EventGateway = Depends(get_gateway),
    sessions: dict[str, DraftSession] = Depends(get_draft_sessions),
):
    """Discard the draft session and stop its event list subscriptions."""
    session = find_session(draft_id, gateway, sessions)
    session.coordinator.close()
    del sessions[draft_id]
