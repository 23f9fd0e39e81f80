"""
Derived analytics over a collection of events.

All functions are pure: they take events (anything exposing ``occurred_at``,
``intensity``, ``importance``, ``emotions`` and ``parent_event_id``) and
return plain dicts/lists ready for the response schemas. ``now`` and the
timezone used for local-day grouping are injectable.

The daily summary buckets by UTC day; calendar, timeline and range cutoffs
use the configured local zone.
"""

from collections import Counter
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Any, Iterable, Sequence

from journal.core.errors import ErrorKind, JournalError
from journal.models.enums import TimelineFilter
from journal.services.normalizer import as_utc, normalize_labels

GRID_DAYS = 42
TREND_THRESHOLD = 0.5
REFLECTION_MIN_EVENTS = 3


def _local_day(value: datetime, tz: tzinfo) -> date:
    return as_utc(value).astimezone(tz).date()


def range_cutoff(range_value: Any, now: datetime | None = None, tz: tzinfo = timezone.utc) -> datetime | None:
    """Lower bound for a symbolic range: "7", "30" (any N > 0), "month" or "all".

    N days means local midnight N-1 days ago, so "7" covers today plus the six
    previous days. Unknown values mean no bound.
    """
    if range_value is None:
        return None
    value = str(range_value).strip().lower()
    if not value or value == "all":
        return None

    local_now = as_utc(now or datetime.now(timezone.utc)).astimezone(tz)

    if value == "month":
        return local_now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    try:
        days = int(value)
    except ValueError:
        return None
    if days <= 0:
        return None

    start = local_now.date() - timedelta(days=days - 1)
    return datetime.combine(start, time.min, tzinfo=tz)


def filter_by_range(events: Iterable[Any], cutoff: datetime | None) -> list[Any]:
    if cutoff is None:
        return list(events)
    return [e for e in events if as_utc(e.occurred_at) >= cutoff]


def daily_summary(events: Iterable[Any]) -> list[dict[str, Any]]:
    """Count and mean intensity/importance per UTC day, ascending"""
    buckets: dict[date, list[Any]] = {}
    for event in events:
        buckets.setdefault(_local_day(event.occurred_at, timezone.utc), []).append(event)

    series = []
    for day in sorted(buckets):
        items = buckets[day]
        series.append({
            "date": day.isoformat(),
            "avg_intensity": round(sum(e.intensity for e in items) / len(items), 2),
            "avg_importance": round(sum(e.importance for e in items) / len(items), 2),
            "count": len(items),
        })
    return series


def weighted_average(series: Sequence[dict[str, Any]], field: str) -> float | None:
    """Count-weighted mean of a daily field; None when nothing was counted"""
    total = sum(point["count"] for point in series)
    if total == 0:
        return None
    return round(sum(point[field] * point["count"] for point in series) / total, 2)


def overall_averages(series: Sequence[dict[str, Any]]) -> tuple[float | None, float | None]:
    return weighted_average(series, "avg_intensity"), weighted_average(series, "avg_importance")


def emotion_frequency(events: Iterable[Any]) -> list[dict[str, Any]]:
    """Events per emotion label, most frequent first.

    Each event counts a label once. Ties keep first-encountered order.
    """
    counts: Counter[str] = Counter()
    for event in events:
        counts.update(normalize_labels(event.emotions or []))
    return [{"emotion": emotion, "count": count} for emotion, count in counts.most_common()]


def most_common_emotion(frequency: Sequence[dict[str, Any]]) -> str | None:
    return frequency[0]["emotion"] if frequency else None


def volatility(series: Sequence[dict[str, Any]]) -> float | None:
    """Mean absolute deviation of the daily average intensity"""
    values = [point["avg_intensity"] for point in series]
    if not values:
        return None
    mean = sum(values) / len(values)
    return round(sum(abs(v - mean) for v in values) / len(values), 2)


def volatility_label(score: float | None) -> str | None:
    if score is None:
        return None
    if score < 1:
        return "low"
    if score < 2:
        return "medium"
    return "high"


def parse_month(value: str) -> tuple[int, int]:
    """"YYYY-MM" to (year, month)"""
    try:
        year_text, month_text = value.strip().split("-")
        year, month = int(year_text), int(month_text)
        date(year, month, 1)
    except (ValueError, AttributeError):
        raise JournalError(ErrorKind.INVALID_INPUT, f"Invalid month: {value!r}, expected YYYY-MM")
    return year, month


def calendar_counts(events: Iterable[Any], year: int, month: int, tz: tzinfo = timezone.utc) -> dict[str, int]:
    """Events per local day, restricted to the given month"""
    counts: Counter[str] = Counter()
    for event in events:
        day = _local_day(event.occurred_at, tz)
        if day.year == year and day.month == month:
            counts[day.isoformat()] += 1
    return dict(sorted(counts.items()))


def activity_level(count: int) -> int:
    if count <= 0:
        return 0
    if count <= 2:
        return 1
    if count <= 5:
        return 2
    if count <= 9:
        return 3
    return 4


def calendar_grid(year: int, month: int, counts: dict[str, int]) -> list[dict[str, Any]]:
    """Six Sunday-first weeks covering the month; padding days count zero"""
    first = date(year, month, 1)
    start = first - timedelta(days=(first.weekday() + 1) % 7)

    cells = []
    for offset in range(GRID_DAYS):
        day = start + timedelta(days=offset)
        in_month = day.month == month
        count = counts.get(day.isoformat(), 0) if in_month else 0
        cells.append({
            "date": day.isoformat(),
            "in_month": in_month,
            "count": count,
            "level": activity_level(count),
        })
    return cells


def filter_structure(events: Iterable[Any], structure: TimelineFilter | str = TimelineFilter.ALL) -> list[Any]:
    structure = TimelineFilter(structure)
    if structure is TimelineFilter.PARENTS:
        return [e for e in events if e.parent_event_id is None]
    if structure is TimelineFilter.SUBS:
        return [e for e in events if e.parent_event_id is not None]
    return list(events)


def timeline(
        events: Iterable[Any],
        structure: TimelineFilter | str = TimelineFilter.ALL,
        tz: tzinfo = timezone.utc
) -> list[dict[str, Any]]:
    """Local-day buckets, newest day first, newest event first within a day"""
    buckets: dict[date, list[Any]] = {}
    for event in filter_structure(events, structure):
        buckets.setdefault(_local_day(event.occurred_at, tz), []).append(event)

    return [
        {
            "date": day.isoformat(),
            "events": sorted(buckets[day], key=lambda e: as_utc(e.occurred_at), reverse=True),
        }
        for day in sorted(buckets, reverse=True)
    ]


def trend_label(series: Sequence[dict[str, Any]]) -> str:
    ordered = sorted(series, key=lambda point: point["date"])
    if len(ordered) < 2:
        return "stayed fairly steady"
    diff = ordered[-1]["avg_intensity"] - ordered[0]["avg_intensity"]
    if diff > TREND_THRESHOLD:
        return "ramped up toward the end"
    if diff < -TREND_THRESHOLD:
        return "tapered toward the end"
    return "stayed fairly steady"


def intensity_descriptor(avg_intensity: float | None) -> str | None:
    if avg_intensity is None:
        return None
    if avg_intensity >= 7:
        return "higher intensity"
    if avg_intensity >= 5:
        return "moderate intensity"
    return "lighter intensity"


def weekly_reflection(
        series: Sequence[dict[str, Any]],
        frequency: Sequence[dict[str, Any]],
        avg_intensity: float | None,
        vol_label: str | None
) -> dict[str, Any]:
    """Narrative summary of a week; only meaningful with at least three events"""
    total_events = sum(point["count"] for point in series)
    trend = trend_label(series)
    descriptor = intensity_descriptor(avg_intensity)
    top_emotions = [item["emotion"] for item in frequency[:2]]

    sentences = []
    if descriptor and vol_label:
        sentences.append(f"You logged a week of {descriptor}, with {vol_label} day-to-day swings.")
    elif descriptor:
        sentences.append(f"You logged a week of {descriptor}.")
    elif vol_label:
        sentences.append(f"Your week had {vol_label} day-to-day swings.")

    sentences.append(f"Overall activity {trend}.")

    if top_emotions:
        sentences.append(f"A couple emotions that showed up a lot: {' & '.join(top_emotions)}.")

    return {
        "total_events": total_events,
        "meaningful": total_events >= REFLECTION_MIN_EVENTS,
        "trend": trend,
        "intensity_descriptor": descriptor,
        "volatility_label": vol_label,
        "top_emotions": top_emotions,
        "narrative": " ".join(sentences),
    }
