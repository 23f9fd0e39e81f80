import asyncio
import uuid
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, TypeVar
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import delete, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from journal.core.errors import ErrorKind, JournalError
from journal.core.locks import OwnerLock
from journal.models.enums import NoteStatus, Perception, TimelineFilter, VerificationStatus
from journal.models.event import Event, Note, utcnow
from journal.services.hierarchy import HierarchyGuard
from journal.services.normalizer import (
    clamp_scale,
    normalize_images,
    normalize_labels,
    normalize_tags,
    normalize_verification_status,
    parse_timestamp,
)

logger = structlog.get_logger()

T = TypeVar("T")

DEFAULT_NOTE_IMPORTANCE = 5
RETRY_BACKOFF = 0.05  # seconds, multiplied by the attempt number

_NOTE_TEXT_FIELDS = ("title", "description", "facts", "assumptions", "patterns", "actions")


def _fields(fields: BaseModel | Mapping[str, Any] | None) -> dict[str, Any]:
    """Only the fields the caller actually supplied"""
    if fields is None:
        return {}
    if isinstance(fields, BaseModel):
        return fields.model_dump(exclude_unset=True)
    return dict(fields)


def _coerce_uuid(value: Any, field: str) -> UUID | None:
    if value is None or isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise JournalError(ErrorKind.INVALID_INPUT, f"{field} is not a valid id")


def _coerce_enum(enum_cls: type[Enum], value: Any, field: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise JournalError(ErrorKind.INVALID_INPUT, f"{field} must be one of: {allowed}")


def _required_title(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise JournalError(ErrorKind.INVALID_INPUT, "title is required")
    return value.strip()


def _optional_text(value: Any, field: str) -> str:
    if not isinstance(value, str):
        raise JournalError(ErrorKind.INVALID_INPUT, f"{field} must be a string")
    return value


class EventStore:
    """Create/update/delete of events and notes, owner-scoped

    Every write validates and normalizes first, runs the hierarchy guard when
    a parent is involved, and commits once; any rejection rolls back the
    whole transaction.
    """

    def __init__(self, db: AsyncSession, lock: OwnerLock | None = None, retries: int = 3):
        self.db = db
        self.lock = lock
        self.retries = max(1, retries)

    async def _write(
            self,
            name: str,
            owner_id: str,
            operation: Callable[[], Awaitable[T]],
            hierarchy: bool = False
    ) -> T:
        if hierarchy and self.lock is not None:
            async with self.lock.hold(owner_id):
                return await self._retrying(name, operation)
        return await self._retrying(name, operation)

    async def _retrying(self, name: str, operation: Callable[[], Awaitable[T]]) -> T:
        attempt = 0
        while True:
            attempt += 1
            try:
                return await operation()
            except OperationalError as e:
                await self.db.rollback()
                if attempt >= self.retries:
                    logger.error("write_failed", operation=name, attempts=attempt, error=str(e))
                    raise
                logger.warning("write_retry", operation=name, attempt=attempt, error=str(e))
                await asyncio.sleep(RETRY_BACKOFF * attempt)
            except Exception:
                await self.db.rollback()
                raise

    async def _get_owned_event(self, owner_id: str, event_id: Any) -> Event:
        event = await self.db.get(Event, _coerce_uuid(event_id, "id"))
        if event is None:
            raise JournalError(ErrorKind.NOT_FOUND, "Event not found")
        if event.owner_id != owner_id:
            raise JournalError(ErrorKind.UNAUTHORIZED, "Event belongs to another user")
        return event

    async def _get_owned_note(self, owner_id: str, note_id: Any) -> Note:
        note = await self.db.get(Note, _coerce_uuid(note_id, "id"))
        if note is None:
            raise JournalError(ErrorKind.NOT_FOUND, "Note not found")
        event = await self.db.get(Event, note.event_id)
        if event is None:
            raise JournalError(ErrorKind.NOT_FOUND, "Note not found")
        if event.owner_id != owner_id:
            raise JournalError(ErrorKind.UNAUTHORIZED, "Note belongs to another user")
        return note

    # Events

    def _event_changes(self, data: dict[str, Any], existing: Event | None = None) -> dict[str, Any]:
        """Validated column values; on update, None means "keep" except for nullable columns"""
        creating = existing is None
        changes: dict[str, Any] = {}

        if creating or data.get("title") is not None:
            changes["title"] = _required_title(data.get("title"))

        for field in ("intensity", "importance"):
            if creating and data.get(field) is None:
                raise JournalError(ErrorKind.INVALID_INPUT, f"{field} is required")
            if data.get(field) is not None:
                changes[field] = clamp_scale(data[field], field)

        if data.get("description") is not None:
            changes["description"] = _optional_text(data["description"], "description")
        elif creating:
            changes["description"] = ""

        if "category" in data or creating:
            category = data.get("category")
            if isinstance(category, str) and category.strip():
                changes["category"] = category.strip()
            else:
                changes["category"] = None

        if data.get("perception") is not None:
            changes["perception"] = _coerce_enum(Perception, data["perception"], "perception")
        elif creating:
            changes["perception"] = Perception.NEUTRAL

        if data.get("verification_status") is not None:
            changes["verification_status"] = normalize_verification_status(data["verification_status"])
        elif creating:
            changes["verification_status"] = VerificationStatus.PENDING

        for field in ("emotions", "physical_sensations"):
            if data.get(field) is not None:
                changes[field] = normalize_labels(data[field])
            elif creating:
                changes[field] = []

        if "tags" in data or creating:
            changes["tags"] = normalize_tags(data.get("tags"), existing.tags if existing else None)
        if "images" in data or creating:
            changes["images"] = normalize_images(data.get("images"), existing.images if existing else None)

        if data.get("occurred_at") is not None:
            changes["occurred_at"] = parse_timestamp(data["occurred_at"])
        elif creating:
            changes["occurred_at"] = utcnow()

        if "parent_event_id" in data:
            changes["parent_event_id"] = _coerce_uuid(data["parent_event_id"], "parent_event_id")

        return changes

    async def create_event(self, owner_id: str, fields: BaseModel | Mapping[str, Any]) -> Event:
        """Validate, normalize and persist a new event

        Raises:
            JournalError: InvalidInput, InvalidDate, ParentNotFound,
                Unauthorized, NestingTooDeep
        """
        data = _fields(fields)
        changes = self._event_changes(data)
        is_demo = bool(data.get("is_demo", False))

        async def operation() -> Event:
            event = Event(id=uuid.uuid4(), owner_id=owner_id, created_at=utcnow(), is_demo=is_demo, **changes)
            if changes.get("parent_event_id") is not None:
                await HierarchyGuard(self.db).check(owner_id, changes["parent_event_id"], event_id=None)
            self.db.add(event)
            await self.db.commit()
            return event

        event = await self._write(
            "create_event",
            owner_id,
            operation,
            hierarchy=changes.get("parent_event_id") is not None
        )
        logger.info(
            "event_created",
            event_id=str(event.id),
            owner_id=owner_id,
            parent_event_id=str(event.parent_event_id) if event.parent_event_id else None
        )
        return event

    async def update_event(self, owner_id: str, event_id: Any, fields: BaseModel | Mapping[str, Any]) -> Event:
        """Apply a partial update; omitted fields keep their stored values

        Raises:
            JournalError: NotFound, Unauthorized, InvalidInput, InvalidDate and
                every hierarchy kind when ``parent_event_id`` is supplied
        """
        data = _fields(fields)

        async def operation() -> Event:
            event = await self._get_owned_event(owner_id, event_id)
            changes = self._event_changes(data, existing=event)

            new_parent = changes.get("parent_event_id")
            if new_parent is not None:
                await HierarchyGuard(self.db).check(owner_id, new_parent, event_id=event.id)

            for column, value in changes.items():
                setattr(event, column, value)
            await self.db.commit()
            return event

        event = await self._write("update_event", owner_id, operation, hierarchy="parent_event_id" in data)
        logger.info("event_updated", event_id=str(event.id), owner_id=owner_id, fields=sorted(data))
        return event

    async def delete_event(self, owner_id: str, event_id: Any) -> bool:
        """Delete an event and its notes; sub-events keep a dangling parent id"""

        async def operation() -> UUID:
            event = await self._get_owned_event(owner_id, event_id)
            deleted_id = event.id
            await self.db.execute(delete(Note).where(Note.event_id == deleted_id))
            await self.db.delete(event)
            await self.db.commit()
            return deleted_id

        deleted_id = await self._write("delete_event", owner_id, operation, hierarchy=True)
        logger.info("event_deleted", event_id=str(deleted_id), owner_id=owner_id)
        return True

    async def get_event(self, owner_id: str, event_id: Any) -> tuple[Event, list[Note], list[Event]]:
        """Event with its notes and direct sub-events, newest first"""
        event = await self._get_owned_event(owner_id, event_id)

        notes = await self.db.execute(
            select(Note).where(Note.event_id == event.id).order_by(Note.created_at.desc())
        )
        sub_events = await self.db.execute(
            select(Event)
            .where(Event.owner_id == owner_id, Event.parent_event_id == event.id)
            .order_by(Event.occurred_at.desc())
        )
        return event, list(notes.scalars().all()), list(sub_events.scalars().all())

    async def list_events(
            self,
            owner_id: str,
            tags: list[str] | None = None,
            structure: TimelineFilter | str = TimelineFilter.ALL,
            order: str = "desc"
    ) -> list[Event]:
        """Owner's events by creation time; a tag filter keeps events sharing any tag"""
        stmt = select(Event).where(Event.owner_id == owner_id)

        structure = TimelineFilter(structure)
        if structure is TimelineFilter.PARENTS:
            stmt = stmt.where(Event.parent_event_id.is_(None))
        elif structure is TimelineFilter.SUBS:
            stmt = stmt.where(Event.parent_event_id.is_not(None))

        stmt = stmt.order_by(Event.created_at.asc() if order == "asc" else Event.created_at.desc())

        result = await self.db.execute(stmt)
        events = list(result.scalars().all())

        wanted = set(normalize_tags(tags or []))
        if wanted:
            events = [e for e in events if wanted.intersection(e.tags or [])]
        return events

    async def list_tags(self, owner_id: str) -> list[str]:
        result = await self.db.execute(select(Event.tags).where(Event.owner_id == owner_id))
        found = set()
        for (tags,) in result:
            found.update(tags or [])
        return sorted(found)

    # Notes

    def _note_changes(self, data: dict[str, Any], existing: Note | None = None) -> dict[str, Any]:
        creating = existing is None
        changes: dict[str, Any] = {}

        for field in _NOTE_TEXT_FIELDS:
            if data.get(field) is not None:
                changes[field] = _optional_text(data[field], field)
            elif creating:
                changes[field] = ""

        if data.get("importance") is not None:
            changes["importance"] = clamp_scale(data["importance"], "importance")
        elif creating:
            changes["importance"] = DEFAULT_NOTE_IMPORTANCE

        if data.get("status") is not None:
            changes["status"] = _coerce_enum(NoteStatus, data["status"], "status")
        elif creating:
            changes["status"] = NoteStatus.OPEN

        if data.get("perception") is not None:
            changes["perception"] = _coerce_enum(Perception, data["perception"], "perception")
        elif creating:
            changes["perception"] = Perception.NEUTRAL

        if "images" in data or creating:
            changes["images"] = normalize_images(data.get("images"), existing.images if existing else None)

        return changes

    async def create_note(self, owner_id: str, event_id: Any, fields: BaseModel | Mapping[str, Any]) -> Note:
        """Attach a note to an existing event of the owner"""
        data = _fields(fields)
        changes = self._note_changes(data)
        is_demo = bool(data.get("is_demo", False))

        async def operation() -> Note:
            event = await self._get_owned_event(owner_id, event_id)
            now = utcnow()
            note = Note(
                id=uuid.uuid4(),
                event_id=event.id,
                created_at=now,
                updated_at=now,
                is_demo=is_demo,
                **changes
            )
            self.db.add(note)
            await self.db.commit()
            return note

        note = await self._write("create_note", owner_id, operation)
        logger.info("note_created", note_id=str(note.id), event_id=str(note.event_id), owner_id=owner_id)
        return note

    async def update_note(self, owner_id: str, note_id: Any, fields: BaseModel | Mapping[str, Any]) -> Note:
        data = _fields(fields)

        async def operation() -> Note:
            note = await self._get_owned_note(owner_id, note_id)
            for column, value in self._note_changes(data, existing=note).items():
                setattr(note, column, value)
            note.updated_at = utcnow()
            await self.db.commit()
            return note

        note = await self._write("update_note", owner_id, operation)
        logger.info("note_updated", note_id=str(note.id), owner_id=owner_id, fields=sorted(data))
        return note

    async def delete_note(self, owner_id: str, note_id: Any) -> bool:
        async def operation() -> UUID:
            note = await self._get_owned_note(owner_id, note_id)
            deleted_id = note.id
            await self.db.delete(note)
            await self.db.commit()
            return deleted_id

        deleted_id = await self._write("delete_note", owner_id, operation)
        logger.info("note_deleted", note_id=str(deleted_id), owner_id=owner_id)
        return True

    async def list_notes(self, owner_id: str, event_id: Any) -> list[Note]:
        event = await self._get_owned_event(owner_id, event_id)
        result = await self.db.execute(
            select(Note).where(Note.event_id == event.id).order_by(Note.created_at.desc())
        )
        return list(result.scalars().all())
