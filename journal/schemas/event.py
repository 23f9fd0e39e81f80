# Pydantic schemas

from pydantic import BaseModel, Field
from datetime import datetime
from uuid import UUID
from typing import Any

from journal.models.enums import Perception, VerificationStatus
from journal.schemas.note import NoteResponse


class EventCreate(BaseModel):
    """Schema for creating an event

    Required-field checks (non-empty title, numeric scales) and normalization
    happen in the store so every caller gets the same rejections.
    """

    title: str | None = None
    description: str | None = None
    intensity: Any = None
    importance: Any = None
    category: str | None = None
    perception: Perception | None = None
    verification_status: str | None = None
    emotions: list[Any] | None = None
    physical_sensations: list[Any] | None = None
    tags: Any = None
    images: Any = None
    parent_event_id: UUID | None = None
    occurred_at: Any = None


class EventUpdate(EventCreate):
    """Partial update: only fields present in the request are applied"""


class EventResponse(BaseModel):
    """Response schema for event operations"""

    id: UUID
    owner_id: str
    created_at: datetime
    occurred_at: datetime
    title: str
    description: str
    category: str | None
    perception: Perception
    verification_status: VerificationStatus
    intensity: int
    importance: int
    emotions: list[str]
    physical_sensations: list[str]
    tags: list[str]
    images: list[str]
    parent_event_id: UUID | None
    is_demo: bool = False

    model_config = {"from_attributes": True}


class EventDetailResponse(EventResponse):
    """Event with its notes and direct sub-events"""

    notes: list[NoteResponse] = Field(default_factory=list)
    sub_events: list[EventResponse] = Field(default_factory=list)


class DeleteResponse(BaseModel):
    success: bool
