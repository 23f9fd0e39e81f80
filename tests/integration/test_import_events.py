from contextlib import asynccontextmanager

import pytest
from sqlalchemy import select

from journal.core.locks import OwnerLock
from journal.models.event import Event
from scripts import import_events

OWNER = "user-1"

CSV = """ref,parent_ref,title,occurred_at,intensity,importance,emotions,tags
s1,p1,Follow-up,2024-03-01T11:00:00Z,4,6,calm,Work|home
p1,,Argument,2024-03-01T10:00:00Z,7,8,anger|shame,work
"""


class RecordingLock(OwnerLock):
    held = []

    @asynccontextmanager
    async def hold(self, owner_id):
        RecordingLock.held.append(owner_id)
        async with super().hold(owner_id):
            yield


@pytest.mark.asyncio
async def test_import_links_sub_events_under_owner_lock(tmp_path, monkeypatch, test_settings, database, session):
    path = tmp_path / "events.csv"
    path.write_text(CSV, encoding="utf-8")
    RecordingLock.held = []
    monkeypatch.setattr(import_events, "settings", test_settings)
    monkeypatch.setattr(import_events, "OwnerLock", RecordingLock)

    await import_events.import_csv(OWNER, str(path))

    rows = (await session.execute(select(Event).where(Event.owner_id == OWNER))).scalars().all()
    by_title = {e.title: e for e in rows}
    assert set(by_title) == {"Argument", "Follow-up"}
    assert by_title["Follow-up"].parent_event_id == by_title["Argument"].id
    assert by_title["Follow-up"].tags == ["work", "home"]
    assert by_title["Argument"].emotions == ["anger", "shame"]

    # Only the sub-event row is a hierarchy write
    assert RecordingLock.held == [OWNER]
