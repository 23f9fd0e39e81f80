from pydantic import BaseModel
from typing import List, Dict

from journal.schemas.event import EventResponse


class DailySummaryResponse(BaseModel):
    """Per-day averages"""
    date: str
    avg_intensity: float
    avg_importance: float
    count: int


class EmotionFrequencyResponse(BaseModel):
    """Emotion label with its occurrence count"""
    emotion: str
    count: int


class OverviewResponse(BaseModel):
    """Summary card over a range"""
    range: str
    total_events: int
    avg_intensity: float | None
    avg_importance: float | None
    most_common_emotion: str | None
    volatility: float | None
    volatility_label: str | None


class CalendarDay(BaseModel):
    """Single cell of the 6-week month grid"""
    date: str
    in_month: bool
    count: int
    level: int


class CalendarResponse(BaseModel):
    """Per-day counts for one month"""
    month: str
    counts: Dict[str, int]
    days: List[CalendarDay]


class TimelineDayResponse(BaseModel):
    """Events of one local day, newest first"""
    date: str
    events: List[EventResponse]


class ReflectionResponse(BaseModel):
    """Weekly reflection narrative"""
    total_events: int
    meaningful: bool
    trend: str
    intensity_descriptor: str | None
    volatility_label: str | None
    top_emotions: List[str]
    narrative: str
