"""
CSV Import Script for Journal Events

Usage:
    python scripts/import_events.py <owner-id> <path-to-csv>

CSV Format:
    ref,parent_ref,title,occurred_at,intensity,importance,description,category,emotions,tags

    - ref / parent_ref link sub-events to a parent row of the same file
    - emotions and tags are "|" separated

Rows go through the EventStore, so normalization and the hierarchy rules
apply exactly as for API writes. Root rows are imported before sub-event rows.
"""

import asyncio
import csv
import sys
from pathlib import Path

# Add parent directory to path to import journal modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from journal.core.config import settings
from journal.core.database import Database
from journal.core.errors import JournalError
from journal.core.locks import OwnerLock
from journal.services.event_store import EventStore

REQUIRED_HEADERS = {'ref', 'parent_ref', 'title', 'occurred_at', 'intensity', 'importance'}


def _split(value: str | None) -> list[str]:
    return [part for part in (value or "").split("|") if part.strip()]


def _number(value: str | None):
    try:
        return float(value) if value not in (None, "") else None
    except ValueError:
        return value


def row_to_fields(row: dict) -> dict:
    return {
        "title": row.get("title"),
        "occurred_at": row.get("occurred_at") or None,
        "intensity": _number(row.get("intensity")),
        "importance": _number(row.get("importance")),
        "description": row.get("description") or "",
        "category": row.get("category") or None,
        "emotions": _split(row.get("emotions")),
        "tags": _split(row.get("tags")),
    }


async def import_csv(owner_id: str, file_path: str):
    """
    Import events for one owner from a CSV file

    Args:
        owner_id: Owner the events are recorded for
        file_path: Path to CSV file
    """
    file_path = Path(file_path)

    if not file_path.exists():
        print(f"Error: File not found: {file_path}")
        sys.exit(1)

    print(f"Starting import from: {file_path}")

    with open(file_path, 'r', encoding='utf-8') as f:
        reader = csv.DictReader(f)

        # Validate headers
        if not REQUIRED_HEADERS.issubset(reader.fieldnames or []):
            print(f"Error: CSV must have headers: {REQUIRED_HEADERS}")
            print(f"Found headers: {reader.fieldnames}")
            sys.exit(1)

        rows = list(enumerate(reader, 1))

    roots = [(i, row) for i, row in rows if not row.get("parent_ref")]
    subs = [(i, row) for i, row in rows if row.get("parent_ref")]

    database = Database(settings.database_url)
    await database.connect()
    owner_lock = OwnerLock(settings.redis_url, timeout=settings.lock_timeout, use_redis=settings.use_redis_locks)
    await owner_lock.connect()

    ids_by_ref = {}
    imported = 0
    failed = 0

    try:
        for i, row in roots + subs:
            fields = row_to_fields(row)

            if row.get("parent_ref"):
                parent_id = ids_by_ref.get(row["parent_ref"])
                if parent_id is None:
                    print(f"Error on row {i}: unknown parent_ref {row['parent_ref']!r}")
                    failed += 1
                    continue
                fields["parent_event_id"] = parent_id

            async with database.session() as session:
                try:
                    event = await EventStore(session, lock=owner_lock, retries=settings.write_retries).create_event(owner_id, fields)
                except JournalError as e:
                    print(f"Error on row {i}: {e.kind.value}: {e.message}")
                    failed += 1
                    continue

            if row.get("ref"):
                ids_by_ref[row["ref"]] = event.id
            imported += 1

            if imported % 100 == 0:
                print(f"Imported {imported} events | Failed: {failed}")
    finally:
        await owner_lock.close()
        await database.dispose()

    print("\n" + "=" * 50)
    print("Import completed!")
    print(f"Total rows: {len(rows)}")
    print(f"Imported: {imported}")
    print(f"Failed: {failed}")
    print("=" * 50)


def main():
    if len(sys.argv) != 3:
        print("Usage: python scripts/import_events.py <owner-id> <path-to-csv>")
        sys.exit(1)

    asyncio.run(import_csv(sys.argv[1], sys.argv[2]))


if __name__ == "__main__":
    main()
