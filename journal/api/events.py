from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
import structlog

from journal.api.deps import get_owner_id, get_store
from journal.models.enums import TimelineFilter
from journal.schemas.event import (
    DeleteResponse,
    EventCreate,
    EventDetailResponse,
    EventResponse,
    EventUpdate,
)
from journal.schemas.note import NoteCreate, NoteResponse
from journal.services.event_store import EventStore

logger = structlog.get_logger()
router = APIRouter(prefix="/events", tags=["events"])


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
        payload: EventCreate,
        owner_id: str = Depends(get_owner_id),
        store: EventStore = Depends(get_store)
):
    """
    Record an event.

    - **title**, **intensity**, **importance** are required
    - **parent_event_id** nests it under a root event (one level only)
    - **occurred_at** accepts ISO-8601 or epoch seconds, defaults to now
    """
    return await store.create_event(owner_id, payload)


@router.get("", response_model=List[EventResponse])
async def list_events(
        tag: List[str] = Query(default=[], description="Keep events having any of these tags"),
        structure: TimelineFilter = Query(default=TimelineFilter.ALL),
        order: str = Query(default="desc", pattern="^(asc|desc)$"),
        owner_id: str = Depends(get_owner_id),
        store: EventStore = Depends(get_store)
):
    """List the caller's events by creation time"""
    return await store.list_events(owner_id, tags=tag, structure=structure, order=order)


@router.get("/tags", response_model=List[str])
async def list_tags(
        owner_id: str = Depends(get_owner_id),
        store: EventStore = Depends(get_store)
):
    """Distinct tags across the caller's events"""
    return await store.list_tags(owner_id)


@router.get("/{event_id}", response_model=EventDetailResponse)
async def get_event(
        event_id: UUID,
        owner_id: str = Depends(get_owner_id),
        store: EventStore = Depends(get_store)
):
    """Event with its notes and sub-events"""
    event, notes, sub_events = await store.get_event(owner_id, event_id)
    return EventDetailResponse(
        **EventResponse.model_validate(event).model_dump(),
        notes=[NoteResponse.model_validate(n) for n in notes],
        sub_events=[EventResponse.model_validate(e) for e in sub_events]
    )


@router.patch("/{event_id}", response_model=EventResponse)
@router.put("/{event_id}", response_model=EventResponse)
async def update_event(
        event_id: UUID,
        payload: EventUpdate,
        owner_id: str = Depends(get_owner_id),
        store: EventStore = Depends(get_store)
):
    """
    Partially update an event.

    Omitted fields keep their values; `"tags": []` clears tags and
    `"parent_event_id": null` detaches a sub-event.
    """
    return await store.update_event(owner_id, event_id, payload)


@router.delete("/{event_id}", response_model=DeleteResponse)
async def delete_event(
        event_id: UUID,
        owner_id: str = Depends(get_owner_id),
        store: EventStore = Depends(get_store)
):
    """Delete an event and its notes. Its sub-events are kept as they are."""
    return {"success": await store.delete_event(owner_id, event_id)}


@router.post("/{event_id}/notes", response_model=NoteResponse, status_code=status.HTTP_201_CREATED)
async def create_note(
        event_id: UUID,
        payload: NoteCreate,
        owner_id: str = Depends(get_owner_id),
        store: EventStore = Depends(get_store)
):
    """Attach an analytic note to an event"""
    return await store.create_note(owner_id, event_id, payload)


@router.get("/{event_id}/notes", response_model=List[NoteResponse])
async def list_notes(
        event_id: UUID,
        owner_id: str = Depends(get_owner_id),
        store: EventStore = Depends(get_store)
):
    return await store.list_notes(owner_id, event_id)
