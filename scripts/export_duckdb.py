"""
DuckDB Export - snapshot one owner's events for ad-hoc analysis

Usage:
    python scripts/export_duckdb.py <owner-id> [range] [duckdb-path]

    range: number of days, "month" or "all" (default: all)

Writes two tables, replacing previous snapshots of the same owner:
    events        one row per event, list columns as JSON strings
    daily_summary per-day averages as served by /stats/summary
"""
import json
import sys
from pathlib import Path
from zoneinfo import ZoneInfo

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker
from journal.core.config import settings
from journal.models.event import Event
from journal.services import aggregator
import structlog
import duckdb
import pandas as pd

logger = structlog.get_logger()

DEFAULT_PATH = "./data/journal.duckdb"
LIST_COLUMNS = ["emotions", "physical_sensations", "tags", "images"]


def load_events(owner_id: str) -> list[Event]:
    engine = create_engine(settings.database_url_sync)
    Session = sessionmaker(bind=engine, expire_on_commit=False)

    with Session() as session:
        events = session.execute(
            select(Event).where(Event.owner_id == owner_id).order_by(Event.occurred_at)
        ).scalars().all()

    engine.dispose()
    return list(events)


def events_frame(events: list[Event]) -> pd.DataFrame:
    df = pd.DataFrame([
        {
            "id": str(e.id),
            "owner_id": e.owner_id,
            "parent_event_id": str(e.parent_event_id) if e.parent_event_id else None,
            "created_at": e.created_at,
            "occurred_at": e.occurred_at,
            "title": e.title,
            "category": e.category,
            "perception": e.perception.value,
            "verification_status": e.verification_status.value,
            "intensity": e.intensity,
            "importance": e.importance,
            "emotions": e.emotions,
            "physical_sensations": e.physical_sensations,
            "tags": e.tags,
            "images": e.images,
        }
        for e in events
    ])

    # DuckDB gets list columns as JSON strings
    for column in LIST_COLUMNS:
        if column in df.columns:
            df[column] = df[column].apply(lambda x: json.dumps(x or []))

    return df


def export(owner_id: str, range_value: str = "all", duckdb_path: str = DEFAULT_PATH) -> dict:
    cutoff = aggregator.range_cutoff(range_value, tz=ZoneInfo(settings.timezone))
    events = aggregator.filter_by_range(load_events(owner_id), cutoff)

    events_df = events_frame(events)
    summary_df = pd.DataFrame(aggregator.daily_summary(events))
    summary_df["owner_id"] = owner_id

    path = Path(duckdb_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    con = duckdb.connect(str(path))
    try:
        for table, df in (("events", events_df), ("daily_summary", summary_df)):
            if df.empty:
                continue

            con.execute(f"CREATE TABLE IF NOT EXISTS {table} AS SELECT * FROM df LIMIT 0")
            con.execute(f"DELETE FROM {table} WHERE owner_id = ?", [owner_id])
            con.append(table, df)
    finally:
        con.close()

    result = {"events": len(events_df), "days": len(summary_df)}
    logger.info("duckdb_export_success", owner_id=owner_id, range=range_value, path=str(path), **result)
    return result


def main():
    if len(sys.argv) < 2:
        print("Usage: python scripts/export_duckdb.py <owner-id> [range] [duckdb-path]")
        sys.exit(1)

    owner_id = sys.argv[1]
    range_value = sys.argv[2] if len(sys.argv) > 2 else "all"
    duckdb_path = sys.argv[3] if len(sys.argv) > 3 else DEFAULT_PATH

    result = export(owner_id, range_value, duckdb_path)
    print(f"Exported {result['events']} events over {result['days']} days to {duckdb_path}")


if __name__ == "__main__":
    main()
