import asyncio
import uuid

import pytest
from sqlalchemy import select

from journal.core.errors import ErrorKind, JournalError
from journal.models.event import Event, utcnow
from journal.services.event_store import EventStore
from journal.services.hierarchy import HierarchyGuard

OWNER = "user-1"
OTHER = "user-2"


def fields(title, **overrides):
    data = {"title": title, "intensity": 5, "importance": 5}
    data.update(overrides)
    return data


def raw_event(event_id, parent_id=None, owner_id=OWNER):
    """Row written around the store, for states valid writes cannot produce"""
    now = utcnow()
    return Event(
        id=event_id,
        owner_id=owner_id,
        created_at=now,
        occurred_at=now,
        title=f"raw {event_id}",
        intensity=5,
        importance=5,
        parent_event_id=parent_id,
    )


async def expect_rejection(kind, coro):
    with pytest.raises(JournalError) as exc:
        await coro
    assert exc.value.kind is kind


@pytest.mark.asyncio
async def test_sub_event_under_root(store):
    parent = await store.create_event(OWNER, fields("Parent"))
    sub = await store.create_event(OWNER, fields("Sub", parent_event_id=parent.id))

    assert sub.parent_event_id == parent.id


@pytest.mark.asyncio
async def test_self_parent_rejected_for_root_and_sub(store):
    root = await store.create_event(OWNER, fields("Root"))
    parent = await store.create_event(OWNER, fields("Parent"))
    sub = await store.create_event(OWNER, fields("Sub", parent_event_id=parent.id))

    await expect_rejection(
        ErrorKind.SELF_PARENT,
        store.update_event(OWNER, root.id, {"parent_event_id": root.id})
    )
    await expect_rejection(
        ErrorKind.SELF_PARENT,
        store.update_event(OWNER, sub.id, {"parent_event_id": sub.id})
    )
    await expect_rejection(
        ErrorKind.SELF_PARENT,
        store.update_event(OWNER, parent.id, {"parent_event_id": parent.id})
    )


@pytest.mark.asyncio
async def test_nesting_under_sub_event_rejected(store):
    parent = await store.create_event(OWNER, fields("Parent"))
    sub = await store.create_event(OWNER, fields("Sub", parent_event_id=parent.id))
    loose = await store.create_event(OWNER, fields("Loose"))

    await expect_rejection(
        ErrorKind.NESTING_TOO_DEEP,
        store.create_event(OWNER, fields("Grandchild", parent_event_id=sub.id))
    )
    await expect_rejection(
        ErrorKind.NESTING_TOO_DEEP,
        store.update_event(OWNER, loose.id, {"parent_event_id": sub.id})
    )


@pytest.mark.asyncio
async def test_event_with_children_cannot_become_sub_event(store):
    parent = await store.create_event(OWNER, fields("Parent"))
    await store.create_event(OWNER, fields("Sub", parent_event_id=parent.id))
    other_root = await store.create_event(OWNER, fields("Other root"))

    await expect_rejection(
        ErrorKind.NESTING_TOO_DEEP,
        store.update_event(OWNER, parent.id, {"parent_event_id": other_root.id})
    )


@pytest.mark.asyncio
async def test_missing_and_foreign_parents(store):
    foreign = await store.create_event(OTHER, fields("Not yours"))

    await expect_rejection(
        ErrorKind.PARENT_NOT_FOUND,
        store.create_event(OWNER, fields("Orphan", parent_event_id=uuid.uuid4()))
    )
    await expect_rejection(
        ErrorKind.UNAUTHORIZED,
        store.create_event(OWNER, fields("Trespasser", parent_event_id=foreign.id))
    )


@pytest.mark.asyncio
async def test_rejected_update_keeps_other_changes_out(store):
    parent = await store.create_event(OWNER, fields("Parent"))
    sub = await store.create_event(OWNER, fields("Sub", parent_event_id=parent.id))
    loose = await store.create_event(OWNER, fields("Loose"))

    await expect_rejection(
        ErrorKind.NESTING_TOO_DEEP,
        store.update_event(OWNER, loose.id, {"title": "Moved", "parent_event_id": sub.id})
    )

    event, _, _ = await store.get_event(OWNER, loose.id)
    assert event.title == "Loose"
    assert event.parent_event_id is None


@pytest.mark.asyncio
async def test_detach_and_reattach(store):
    first = await store.create_event(OWNER, fields("First"))
    second = await store.create_event(OWNER, fields("Second"))
    sub = await store.create_event(OWNER, fields("Sub", parent_event_id=first.id))

    detached = await store.update_event(OWNER, sub.id, {"parent_event_id": None})
    assert detached.parent_event_id is None

    moved = await store.update_event(OWNER, sub.id, {"parent_event_id": second.id})
    assert moved.parent_event_id == second.id


@pytest.mark.asyncio
async def test_walk_ancestors_returns_chain(session):
    root, child = uuid.uuid4(), uuid.uuid4()
    session.add_all([raw_event(root), raw_event(child, parent_id=root)])
    await session.commit()

    chain = await HierarchyGuard(session).walk_ancestors(child)

    assert chain == [child, root]


@pytest.mark.asyncio
async def test_walk_ancestors_detects_cycle_through_event(session):
    a, b = uuid.uuid4(), uuid.uuid4()
    session.add_all([raw_event(a, parent_id=b), raw_event(b, parent_id=a)])
    await session.commit()

    await expect_rejection(
        ErrorKind.CIRCULAR_PARENT,
        HierarchyGuard(session).walk_ancestors(a, event_id=b)
    )


@pytest.mark.asyncio
async def test_walk_ancestors_caps_unrelated_cycle(session):
    a, b = uuid.uuid4(), uuid.uuid4()
    session.add_all([raw_event(a, parent_id=b), raw_event(b, parent_id=a)])
    await session.commit()

    await expect_rejection(
        ErrorKind.CHAIN_TOO_DEEP,
        HierarchyGuard(session).walk_ancestors(a, event_id=uuid.uuid4())
    )


@pytest.mark.asyncio
async def test_walk_ancestors_caps_long_chain(session):
    ids = [uuid.uuid4() for _ in range(8)]
    session.add_all([
        raw_event(event_id, parent_id=ids[i - 1] if i else None)
        for i, event_id in enumerate(ids)
    ])
    await session.commit()

    guard = HierarchyGuard(session, max_hops=5)
    await expect_rejection(ErrorKind.CHAIN_TOO_DEEP, guard.walk_ancestors(ids[-1]))

    # Exactly at the cap, but resolving to a root
    assert len(await guard.walk_ancestors(ids[4])) == 5


@pytest.mark.asyncio
async def test_default_cap_allows_long_valid_chain(session):
    ids = [uuid.uuid4() for _ in range(20)]
    session.add_all([
        raw_event(event_id, parent_id=ids[i - 1] if i else None)
        for i, event_id in enumerate(ids)
    ])
    await session.commit()

    chain = await HierarchyGuard(session).walk_ancestors(ids[-1])

    assert chain == list(reversed(ids))


@pytest.mark.asyncio
async def test_concurrent_writes_keep_sub_events_childless(store, database, owner_lock):
    a = await store.create_event(OWNER, fields("A"))
    b = await store.create_event(OWNER, fields("B"))

    async def attach_a_under_b():
        async with database.session() as s:
            return await EventStore(s, lock=owner_lock).update_event(OWNER, a.id, {"parent_event_id": b.id})

    async def create_c_under_a():
        async with database.session() as s:
            return await EventStore(s, lock=owner_lock).create_event(OWNER, fields("C", parent_event_id=a.id))

    results = await asyncio.gather(attach_a_under_b(), create_c_under_a(), return_exceptions=True)

    written = [r for r in results if isinstance(r, Event)]
    rejected = [r for r in results if isinstance(r, JournalError)]
    assert len(written) == 1
    assert len(rejected) == 1
    assert rejected[0].kind is ErrorKind.NESTING_TOO_DEEP

    async with database.session() as s:
        rows = (await s.execute(select(Event).where(Event.owner_id == OWNER))).scalars().all()
    parent_ids = {e.parent_event_id for e in rows if e.parent_event_id is not None}
    assert all(e.parent_event_id is None for e in rows if e.id in parent_ids)
