# SQLAlchemy models

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import declarative_base
from datetime import datetime, timezone
import uuid

from journal.models.enums import NoteStatus, Perception, VerificationStatus

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_column(enum_cls):
    # Persist the display values ("Needs Watch"), not the member names
    return Enum(
        enum_cls,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
    )


class Event(Base):
    __tablename__ = "events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(String(255), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    occurred_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String(255), nullable=True)
    perception = Column(_enum_column(Perception), nullable=False, default=Perception.NEUTRAL)
    verification_status = Column(
        _enum_column(VerificationStatus),
        nullable=False,
        default=VerificationStatus.PENDING
    )

    intensity = Column(Integer, nullable=False)
    importance = Column(Integer, nullable=False)

    emotions = Column(JSON, nullable=False, default=list)
    physical_sensations = Column(JSON, nullable=False, default=list)
    tags = Column(JSON, nullable=False, default=list)
    images = Column(JSON, nullable=False, default=list)

    # No FK constraint: deleting a parent leaves sub-events with a dangling reference
    parent_event_id = Column(Uuid, nullable=True, index=True)

    is_demo = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index('idx_owner_occurred', 'owner_id', 'occurred_at'),
        Index('idx_owner_created', 'owner_id', 'created_at'),
    )


class Note(Base):
    __tablename__ = "notes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    event_id = Column(
        Uuid,
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    title = Column(String(500), nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    perception = Column(_enum_column(Perception), nullable=False, default=Perception.NEUTRAL)
    importance = Column(Integer, nullable=False)
    status = Column(_enum_column(NoteStatus), nullable=False, default=NoteStatus.OPEN)

    facts = Column(Text, nullable=False, default="")
    assumptions = Column(Text, nullable=False, default="")
    patterns = Column(Text, nullable=False, default="")
    actions = Column(Text, nullable=False, default="")

    images = Column(JSON, nullable=False, default=list)

    is_demo = Column(Boolean, nullable=False, default=False)
