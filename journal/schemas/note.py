from pydantic import BaseModel
from datetime import datetime
from uuid import UUID
from typing import Any

from journal.models.enums import NoteStatus, Perception


class NoteCreate(BaseModel):
    """Schema for creating a note on an event"""

    title: str | None = None
    description: str | None = None
    perception: Perception | None = None
    importance: Any = None
    status: NoteStatus | None = None
    facts: str | None = None
    assumptions: str | None = None
    patterns: str | None = None
    actions: str | None = None
    images: Any = None


class NoteUpdate(NoteCreate):
    """Partial update; omitted images are preserved"""


class NoteResponse(BaseModel):
    id: UUID
    event_id: UUID
    created_at: datetime
    updated_at: datetime
    title: str
    description: str
    perception: Perception
    importance: int
    status: NoteStatus
    facts: str
    assumptions: str
    patterns: str
    actions: str
    images: list[str]
    is_demo: bool = False

    model_config = {"from_attributes": True}
