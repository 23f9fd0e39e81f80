from uuid import UUID

from sqlalchemy import Integer, literal_column, select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from journal.core.errors import ErrorKind, JournalError
from journal.models.event import Event

logger = structlog.get_logger()

# Defence against corrupted chains only; valid data never exceeds two levels
MAX_ANCESTOR_HOPS = 100


class HierarchyGuard:
    """Validates parent/sub-event assignment against the persisted hierarchy"""

    def __init__(self, session: AsyncSession, max_hops: int = MAX_ANCESTOR_HOPS):
        self.session = session
        self.max_hops = max_hops

    def _reject(self, kind: ErrorKind, message: str, **context):
        logger.warning("hierarchy_rejected", kind=kind.value, **context)
        raise JournalError(kind, message)

    async def check(self, owner_id: str, parent_id: UUID, event_id: UUID | None = None) -> Event:
        """
        Validate attaching ``event_id`` (None for a new event) under ``parent_id``

        Must run inside the transaction that performs the write; the parent row
        is read with FOR UPDATE where the backend supports it.

        Returns:
            The parent Event

        Raises:
            JournalError: SelfParent, ParentNotFound, Unauthorized,
                NestingTooDeep, CircularParent or ChainTooDeep
        """
        if event_id is not None and parent_id == event_id:
            self._reject(
                ErrorKind.SELF_PARENT,
                "An event cannot be its own parent",
                event_id=str(event_id)
            )

        result = await self.session.execute(
            select(Event).where(Event.id == parent_id).with_for_update()
        )
        parent = result.scalar_one_or_none()

        if parent is None:
            self._reject(
                ErrorKind.PARENT_NOT_FOUND,
                "Parent event not found",
                parent_id=str(parent_id)
            )

        if parent.owner_id != owner_id:
            self._reject(
                ErrorKind.UNAUTHORIZED,
                "Parent event belongs to another user",
                parent_id=str(parent_id),
                owner_id=owner_id
            )

        if parent.parent_event_id is not None:
            self._reject(
                ErrorKind.NESTING_TOO_DEEP,
                "Sub-events cannot have sub-events of their own",
                parent_id=str(parent_id)
            )

        if event_id is not None and await self.has_children(event_id):
            self._reject(
                ErrorKind.NESTING_TOO_DEEP,
                "An event with sub-events cannot become a sub-event",
                event_id=str(event_id)
            )

        await self.walk_ancestors(parent.id, event_id)
        return parent

    async def has_children(self, event_id: UUID) -> bool:
        result = await self.session.execute(
            select(Event.id).where(Event.parent_event_id == event_id).limit(1)
        )
        return result.first() is not None

    async def walk_ancestors(self, start_id: UUID, event_id: UUID | None = None) -> list[UUID]:
        """
        Follow parent references upward from ``start_id`` in one recursive query

        Returns:
            Ids on the chain, ``start_id`` first

        Raises:
            JournalError: CircularParent if ``event_id`` is on the chain,
                ChainTooDeep if the hop cap is reached before a root
        """
        anchor = (
            select(
                Event.id.label("id"),
                Event.parent_event_id.label("parent_id"),
                literal_column("1", Integer).label("depth")
            )
            .where(Event.id == start_id)
            .cte("ancestors", recursive=True)
        )
        step = (
            select(Event.id, Event.parent_event_id, anchor.c.depth + 1)
            .join(anchor, Event.id == anchor.c.parent_id)
            .where(anchor.c.depth < self.max_hops)
        )
        ancestors = anchor.union_all(step)

        result = await self.session.execute(
            select(ancestors.c.id, ancestors.c.parent_id, ancestors.c.depth)
            .order_by(ancestors.c.depth)
        )
        chain = result.all()

        for row in chain:
            if event_id is not None and row.id == event_id:
                self._reject(
                    ErrorKind.CIRCULAR_PARENT,
                    "Parent assignment would create a cycle",
                    event_id=str(event_id),
                    depth=row.depth
                )

        if len(chain) >= self.max_hops and chain[-1].parent_id is not None:
            self._reject(
                ErrorKind.CHAIN_TOO_DEEP,
                f"Parent chain exceeds {self.max_hops} hops",
                start_id=str(start_id)
            )

        return [row.id for row in chain]
