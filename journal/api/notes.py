from uuid import UUID

from fastapi import APIRouter, Depends

from journal.api.deps import get_owner_id, get_store
from journal.schemas.event import DeleteResponse
from journal.schemas.note import NoteResponse, NoteUpdate
from journal.services.event_store import EventStore

router = APIRouter(prefix="/notes", tags=["notes"])


@router.patch("/{note_id}", response_model=NoteResponse)
@router.put("/{note_id}", response_model=NoteResponse)
async def update_note(
        note_id: UUID,
        payload: NoteUpdate,
        owner_id: str = Depends(get_owner_id),
        store: EventStore = Depends(get_store)
):
    """Partially update a note; omitted images are preserved"""
    return await store.update_note(owner_id, note_id, payload)


@router.delete("/{note_id}", response_model=DeleteResponse)
async def delete_note(
        note_id: UUID,
        owner_id: str = Depends(get_owner_id),
        store: EventStore = Depends(get_store)
):
    return {"success": await store.delete_note(owner_id, note_id)}
