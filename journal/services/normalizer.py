"""
Canonicalization of loosely typed event input.

Everything here is pure: no I/O, no state. Collection normalizers never
raise; scale and timestamp parsing raise ``JournalError`` so the store can
abort the write.
"""

import math
import re
from datetime import date, datetime, time, timezone
from typing import Any, Iterable

from journal.core.errors import ErrorKind, JournalError
from journal.models.enums import VerificationStatus

SCALE_MIN = 1
SCALE_MAX = 10

# Epoch values above this are read as milliseconds
_MILLIS_THRESHOLD = 1e11

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def _dedupe(items: Iterable[str]) -> list[str]:
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def _as_list(value: Any) -> list | None:
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return None


def normalize_tags(value: Any, existing: list[str] | None = None) -> list[str]:
    """Stringify, trim, lower-case, drop empties and dedupe tags.

    Input that is not a collection degrades to ``existing`` (or an empty list).
    """
    items = _as_list(value)
    if items is None:
        return list(existing or [])
    return _dedupe(t for t in (str(i).strip().lower() for i in items if i is not None) if t)


def normalize_images(value: Any, existing: list[str] | None = None) -> list[str]:
    """Stringify, trim, drop empties and dedupe image references."""
    items = _as_list(value)
    if items is None:
        return list(existing or [])
    return _dedupe(s for s in (str(i).strip() for i in items if i is not None) if s)


def normalize_labels(value: Any) -> list[str]:
    """Emotion and sensation labels: trimmed, non-empty, distinct, case kept."""
    items = _as_list(value)
    if items is None:
        return []
    return _dedupe(s for s in (str(i).strip() for i in items if i is not None) if s)


def _squash(value: str) -> str:
    return _NON_ALNUM.sub("", value.lower())


def normalize_verification_status(value: Any) -> VerificationStatus:
    """Map a loose status string onto the enumeration, defaulting to Pending.

    "verified-true", "VERIFIED TRUE" and "verified" all resolve; the first
    option whose squashed form matches exactly or by prefix wins.
    """
    if isinstance(value, VerificationStatus):
        return value
    squashed = _squash(str(value)) if value is not None else ""
    if not squashed:
        return VerificationStatus.PENDING

    for option in VerificationStatus:
        candidate = _squash(option.value)
        if candidate == squashed or candidate.startswith(squashed) or squashed.startswith(candidate):
            return option
    return VerificationStatus.PENDING


def clamp_scale(value: Any, field: str) -> int:
    """Round a numeric scale value and clamp it into [1, 10]."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise JournalError(ErrorKind.INVALID_INPUT, f"{field} must be a number")
    return max(SCALE_MIN, min(SCALE_MAX, int(round(value))))


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are UTC (SQLite drops tzinfo on the way back); aware ones are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Parse a datetime, date, numeric epoch or ISO-8601 string into a UTC datetime.

    Raises:
        JournalError: ``InvalidDate`` when the input is not a valid instant
    """
    if isinstance(value, datetime):
        return as_utc(value)

    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if not math.isfinite(value):
            raise JournalError(ErrorKind.INVALID_DATE, f"Invalid timestamp: {value!r}")
        seconds = value / 1000 if abs(value) > _MILLIS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise JournalError(ErrorKind.INVALID_DATE, f"Invalid timestamp: {value!r}")

    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return as_utc(datetime.fromisoformat(text))
        except ValueError:
            raise JournalError(ErrorKind.INVALID_DATE, f"Invalid timestamp: {value!r}")

    raise JournalError(ErrorKind.INVALID_DATE, f"Invalid timestamp: {value!r}")
