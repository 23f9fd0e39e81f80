import random
import uuid
from datetime import datetime, timedelta

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from journal.models.enums import NoteStatus, Perception, VerificationStatus
from journal.models.event import Event, Note, utcnow

logger = structlog.get_logger()

EMOTIONS = ["anger", "sadness", "anxiety", "numbness", "confusion", "shame", "hope", "calm"]

PHYSICAL_SENSATIONS = [
    "Tight Chest",
    "Butterflies/Stomach Flutters",
    "Headache/Pressure",
    "Warmth or Heat in the Body",
    "Shaky or Trembling",
    "Tension in Shoulders/Neck",
    "Shortness of Breath",
    "Fatigue/Heavy Limbs",
]

CATEGORIES = ["work", "relationship", "self", "family", "health"]

PARENT_TAG = "demo-parent"
SUB_TAG = "demo-sub"


class DemoDataService:
    """Generates and clears flagged demo events and notes for one owner

    Rows are built directly rather than through the store: parents are written
    before their sub-events, so the two-level hierarchy holds by construction.
    """

    def __init__(self, db: AsyncSession, rng: random.Random | None = None):
        self.db = db
        self.rng = rng or random.Random()

    def _subset(self, items: list[str], max_count: int) -> list[str]:
        return self.rng.sample(items, self.rng.randint(0, min(max_count, len(items))))

    def _occurred_at(self, now: datetime) -> datetime:
        return now - timedelta(days=self.rng.randint(0, 365), seconds=self.rng.randint(0, 24 * 60 * 60))

    def _event(self, owner_id: str, title: str, tags: list[str], now: datetime, parent_id=None) -> Event:
        return Event(
            id=uuid.uuid4(),
            owner_id=owner_id,
            created_at=now,
            occurred_at=self._occurred_at(now),
            title=title,
            description=f"Seeded {title.lower()}.",
            category=self.rng.choice(CATEGORIES),
            perception=self.rng.choice(list(Perception)),
            verification_status=VerificationStatus.PENDING,
            intensity=self.rng.randint(1, 10),
            importance=self.rng.randint(1, 10),
            emotions=self._subset(EMOTIONS, 3),
            physical_sensations=self._subset(PHYSICAL_SENSATIONS, 3),
            tags=tags,
            images=[],
            parent_event_id=parent_id,
            is_demo=True,
        )

    def _note(self, event_id, index: int, now: datetime) -> Note:
        return Note(
            id=uuid.uuid4(),
            event_id=event_id,
            created_at=now,
            updated_at=now,
            title=f"Demo Note #{index}",
            description="Generated demo note.",
            perception=self.rng.choice(list(Perception)),
            importance=self.rng.randint(1, 10),
            status=self.rng.choice(list(NoteStatus)),
            facts="Demo facts.",
            assumptions="Demo assumptions.",
            patterns="Demo patterns.",
            actions="Demo actions.",
            images=[],
            is_demo=True,
        )

    async def generate(
            self,
            owner_id: str,
            parent_count: int,
            subs_per_parent: int,
            notes_per_event: int
    ) -> dict[str, int]:
        """Create parents, their sub-events, and notes on every event"""
        now = utcnow()
        batch_tag = f"demo-batch:{uuid.uuid4()}"

        parents = [
            self._event(owner_id, f"Demo Parent Event #{i + 1}", [batch_tag, PARENT_TAG], now)
            for i in range(parent_count)
        ]
        subs = [
            self._event(
                owner_id,
                f"Demo Sub Event P{pi + 1}.{si + 1}",
                [batch_tag, SUB_TAG],
                now,
                parent_id=parent.id
            )
            for pi, parent in enumerate(parents)
            for si in range(subs_per_parent)
        ]
        notes = [
            self._note(event.id, ni + 1, now)
            for event in parents + subs
            for ni in range(notes_per_event)
        ]

        self.db.add_all(parents)
        await self.db.flush()
        self.db.add_all(subs)
        await self.db.flush()
        self.db.add_all(notes)
        await self.db.commit()

        result = {"parents": len(parents), "sub_events": len(subs), "notes": len(notes)}
        logger.info("demo_data_generated", owner_id=owner_id, batch_tag=batch_tag, **result)
        return result

    async def clear(self, owner_id: str) -> dict[str, int]:
        """Delete the owner's demo notes, then demo events"""
        owner_events = select(Event.id).where(Event.owner_id == owner_id)
        demo_events = owner_events.where(Event.is_demo.is_(True))

        # Demo notes, plus any note left on a demo event
        notes = await self.db.execute(
            delete(Note)
            .where(or_(
                Note.event_id.in_(demo_events),
                Note.is_demo.is_(True) & Note.event_id.in_(owner_events)
            ))
            .execution_options(synchronize_session=False)
        )
        events = await self.db.execute(
            delete(Event)
            .where(Event.is_demo.is_(True), Event.owner_id == owner_id)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        result = {"notes": notes.rowcount, "events": events.rowcount}
        logger.info("demo_data_cleared", owner_id=owner_id, **result)
        return result
