from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Callable, Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from journal.models.enums import TimelineFilter
from journal.models.event import Event
from journal.services import aggregator

logger = structlog.get_logger()

REFLECTION_RANGE = "7"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnalyticsService:
    """Loads an owner's events and derives statistics; never writes"""

    def __init__(
            self,
            db: AsyncSession,
            tz: tzinfo,
            now: Callable[[], datetime] = _utcnow
    ):
        self.db = db
        self.tz = tz
        self.now = now

    async def _load(
            self,
            owner_id: str,
            start: datetime | None = None,
            end: datetime | None = None
    ) -> List[Event]:
        stmt = select(Event).where(Event.owner_id == owner_id)
        if start is not None:
            stmt = stmt.where(Event.occurred_at >= start.astimezone(timezone.utc))
        if end is not None:
            stmt = stmt.where(Event.occurred_at < end.astimezone(timezone.utc))
        stmt = stmt.order_by(Event.occurred_at)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _load_range(self, owner_id: str, range_value: str) -> List[Event]:
        cutoff = aggregator.range_cutoff(range_value, now=self.now(), tz=self.tz)
        return await self._load(owner_id, start=cutoff)

    async def get_daily_summary(self, owner_id: str, range_value: str) -> List[Dict[str, Any]]:
        events = await self._load_range(owner_id, range_value)
        series = aggregator.daily_summary(events)

        logger.info("daily_summary_query", owner_id=owner_id, range=range_value, days=len(series))
        return series

    async def get_emotion_frequency(self, owner_id: str, range_value: str) -> List[Dict[str, Any]]:
        events = await self._load_range(owner_id, range_value)
        frequency = aggregator.emotion_frequency(events)

        logger.info("emotion_frequency_query", owner_id=owner_id, range=range_value, labels=len(frequency))
        return frequency

    async def get_overview(self, owner_id: str, range_value: str) -> Dict[str, Any]:
        """Weighted averages, most common emotion and volatility for a range"""
        events = await self._load_range(owner_id, range_value)
        series = aggregator.daily_summary(events)
        avg_intensity, avg_importance = aggregator.overall_averages(series)
        score = aggregator.volatility(series)

        logger.info("overview_query", owner_id=owner_id, range=range_value, events=len(events))
        return {
            "range": range_value,
            "total_events": len(events),
            "avg_intensity": avg_intensity,
            "avg_importance": avg_importance,
            "most_common_emotion": aggregator.most_common_emotion(aggregator.emotion_frequency(events)),
            "volatility": score,
            "volatility_label": aggregator.volatility_label(score),
        }

    async def get_calendar(self, owner_id: str, month: str) -> Dict[str, Any]:
        year, month_number = aggregator.parse_month(month)
        start = datetime(year, month_number, 1, tzinfo=self.tz)
        # Day 28 + 4 days always lands in the next month
        next_month = (start.replace(day=28) + timedelta(days=4)).replace(day=1)

        events = await self._load(owner_id, start=start, end=next_month)
        counts = aggregator.calendar_counts(events, year, month_number, tz=self.tz)

        logger.info("calendar_query", owner_id=owner_id, month=month, active_days=len(counts))
        return {
            "month": f"{year:04d}-{month_number:02d}",
            "counts": counts,
            "days": aggregator.calendar_grid(year, month_number, counts),
        }

    async def get_timeline(
            self,
            owner_id: str,
            range_value: str,
            structure: TimelineFilter | str = TimelineFilter.ALL
    ) -> List[Dict[str, Any]]:
        events = await self._load_range(owner_id, range_value)
        days = aggregator.timeline(events, structure, tz=self.tz)

        logger.info(
            "timeline_query",
            owner_id=owner_id,
            range=range_value,
            structure=TimelineFilter(structure).value,
            days=len(days)
        )
        return days

    async def get_weekly_reflection(self, owner_id: str) -> Dict[str, Any]:
        events = await self._load_range(owner_id, REFLECTION_RANGE)
        series = aggregator.daily_summary(events)
        avg_intensity, _ = aggregator.overall_averages(series)
        label = aggregator.volatility_label(aggregator.volatility(series))

        reflection = aggregator.weekly_reflection(
            series,
            aggregator.emotion_frequency(events),
            avg_intensity,
            label
        )

        logger.info("weekly_reflection_query", owner_id=owner_id, events=reflection["total_events"])
        return reflection
