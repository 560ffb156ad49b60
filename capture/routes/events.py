"""Event routes for creating, reading and managing hosted events."""
from collections.abc import Callable
from datetime import datetime
from typing import Literal
from uuid import uuid4

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlmodel import Field, SQLModel

from capture.core.dependencies import get_gateway
from capture.events.errors import EventError, Unauthenticated, Unauthorized
from capture.events.gateway import EventGateway
from capture.events.subscriptions import EventsCallback, Subscription
from capture.models import Event
from capture.models.event import REVEAL_PHOTOS_TIMINGS, describe_time_status
from capture.routes.errors import http_error

router = APIRouter(prefix="/events", tags=["events"])

RevealTiming = Literal[REVEAL_PHOTOS_TIMINGS]


class EventFields(SQLModel):
    """Host-editable event settings."""
    event_name: str = "My Event"
    title: str = "Take a Photo!"
    subtitle: str = ""
    button_text: str = "Take Photos"
    end_date: datetime | None = None
    reveal_photos_timing: RevealTiming = "Immediately"
    photos_per_person: int = Field(default=10, gt=0)
    max_guests: int = Field(default=10, gt=0)
    gallery_access: bool = True


class EventRead(Event):
    time_status: str


def to_read(event: Event) -> EventRead:
    return EventRead(**event.model_dump(), time_status=describe_time_status(event))


def snapshot(subscribe: Callable[[EventsCallback], Subscription]) -> list[Event]:
    """Current contents of a live list, without keeping the subscription."""
    deliveries: list[list[Event]] = []
    subscription = subscribe(deliveries.append)
    subscription.cancel()
    return deliveries[-1] if deliveries else []


@router.post("", status_code=201, response_model=EventRead)
async def create_event(fields: EventFields, gateway: EventGateway = Depends(get_gateway)):
    """
    Create an event hosted by the caller.

    The event gets a fresh id, "active" status and no background image;
    upload one afterwards with POST /events/{event_id}/image.
    """
    event = Event(id=str(uuid4()), **fields.model_dump())
    try:
        created = await gateway.create(event)
    except EventError as e:
        raise http_error(e) from e
    return to_read(created)


@router.get("/hosted", response_model=list[EventRead])
async def hosted_events(gateway: EventGateway = Depends(get_gateway)):
    """Events the caller hosts, most recent first. Empty when signed out."""
    caller_id = gateway.current_user_id()
    events = snapshot(lambda cb: gateway.list_hosted(caller_id, cb))
    return [to_read(e) for e in events]


@router.get("/participating", response_model=list[EventRead])
async def participating_events(gateway: EventGateway = Depends(get_gateway)):
    """Events the caller joined, most recent first. Empty when signed out."""
    caller_id = gateway.current_user_id()
    events = snapshot(lambda cb: gateway.list_participating(caller_id, cb))
    return [to_read(e) for e in events]


@router.get("/{event_id}", response_model=EventRead)
async def event_detail(event_id: str, gateway: EventGateway = Depends(get_gateway)):
    """Single event. Returns 404 if it does not exist."""
    try:
        event = await gateway.get(event_id)
    except EventError as e:
        raise http_error(e) from e
    return to_read(event)


@router.put("/{event_id}", response_model=EventRead)
async def update_event(
    event_id: str,
    fields: EventFields,
    gateway: EventGateway = Depends(get_gateway),
):
    """
    Replace the host-editable settings of an event.

    Only the host may update. Ownership, creation time, status, participants
    and the background image are kept from the stored event.
    """
    try:
        current = await gateway.get(event_id)
        updated = current.model_copy(update=fields.model_dump())
        await gateway.update(updated)
    except EventError as e:
        raise http_error(e) from e
    return to_read(updated)


@router.post("/{event_id}/image", response_model=EventRead)
async def upload_event_image(
    event_id: str,
    image: UploadFile = File(...),
    gateway: EventGateway = Depends(get_gateway),
):
    """
    Replace the event's background image.

    The image is stored first; the event is then updated with its URL.
    """
    media = await image.read()
    try:
        caller_id = gateway.current_user_id()
        if not caller_id:
            raise Unauthenticated()
        current = await gateway.get(event_id)
        # Ownership is checked before anything is uploaded
        if current.creator_id != caller_id:
            raise Unauthorized("Not authorized to update this event")
        url = await gateway.upload_image(event_id, media)
        updated = current.model_copy(update={"background_image_url": url})
        await gateway.update(updated)
    except EventError as e:
        raise http_error(e) from e
    return to_read(updated)


@router.post("/{event_id}/end", response_model=EventRead)
async def end_event(event_id: str, gateway: EventGateway = Depends(get_gateway)):
    """End an event. Only the host may end it; ending is permanent."""
    try:
        await gateway.end_event(event_id)
        event = await gateway.get(event_id)
    except EventError as e:
        raise http_error(e) from e
    return to_read(event)


@router.post("/{event_id}/participants", response_model=EventRead)
async def join_event(event_id: str, gateway: EventGateway = Depends(get_gateway)):
    """Join an event as the caller. Joining twice has no further effect."""
    caller_id = gateway.current_user_id()
    if not caller_id:
        raise http_error(Unauthenticated())

    try:
        event = await gateway.get(event_id)
        if event.is_ended:
            raise HTTPException(status_code=400, detail="Cannot join an ended event")
        await gateway.add_participant(event_id, caller_id)
        event = await gateway.get(event_id)
    except EventError as e:
        raise http_error(e) from e
    return to_read(event)
