# GET /stats/*

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List
from journal.api.deps import get_analytics, get_owner_id
from journal.core.errors import JournalError
from journal.models.enums import TimelineFilter
from journal.services.analytics import AnalyticsService
from journal.schemas.analytics import (
    CalendarResponse,
    DailySummaryResponse,
    EmotionFrequencyResponse,
    OverviewResponse,
    ReflectionResponse,
    TimelineDayResponse,
)
import structlog

logger = structlog.get_logger()
router = APIRouter(prefix="/stats", tags=["analytics"])

RANGE_PATTERN = r"^(all|month|[1-9][0-9]*)$"
MONTH_PATTERN = r"^[0-9]{4}-[0-9]{2}$"


def _range_query(default: str = "30"):
    return Query(
        default=default,
        pattern=RANGE_PATTERN,
        description="Time window: number of days (e.g. 7, 30), 'month' or 'all'"
    )


@router.get("/summary", response_model=List[DailySummaryResponse])
async def get_daily_summary(
        range: str = _range_query(),
        owner_id: str = Depends(get_owner_id),
        service: AnalyticsService = Depends(get_analytics)
):
    """
    Average intensity and importance per day, ascending.

    - **range**: number of days, `month` or `all`
    """
    try:
        return await service.get_daily_summary(owner_id, range)
    except Exception as e:
        logger.error("daily_summary_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to fetch daily summary")


@router.get("/emotions", response_model=List[EmotionFrequencyResponse])
async def get_emotion_frequency(
        range: str = _range_query(),
        owner_id: str = Depends(get_owner_id),
        service: AnalyticsService = Depends(get_analytics)
):
    """
    Events per emotion label, most frequent first.

    - **range**: number of days, `month` or `all`
    """
    try:
        return await service.get_emotion_frequency(owner_id, range)
    except Exception as e:
        logger.error("emotion_frequency_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to fetch emotion frequency")


@router.get("/overview", response_model=OverviewResponse)
async def get_overview(
        range: str = _range_query(),
        owner_id: str = Depends(get_owner_id),
        service: AnalyticsService = Depends(get_analytics)
):
    """Weighted averages, most common emotion and volatility for the range"""
    try:
        return await service.get_overview(owner_id, range)
    except Exception as e:
        logger.error("overview_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to fetch overview")


@router.get("/calendar", response_model=CalendarResponse)
async def get_calendar(
        month: str = Query(..., pattern=MONTH_PATTERN, description="Month (YYYY-MM)"),
        owner_id: str = Depends(get_owner_id),
        service: AnalyticsService = Depends(get_analytics)
):
    """
    Event counts per day of a month, plus the 6-week display grid.

    Padding days from adjacent months are shown with a zero count.
    """
    try:
        return await service.get_calendar(owner_id, month)
    except JournalError:
        raise
    except Exception as e:
        logger.error("calendar_failed", error=str(e), month=month)
        raise HTTPException(status_code=500, detail="Failed to fetch calendar")


@router.get("/timeline", response_model=List[TimelineDayResponse])
async def get_timeline(
        range: str = _range_query("all"),
        structure: TimelineFilter = Query(default=TimelineFilter.ALL),
        owner_id: str = Depends(get_owner_id),
        service: AnalyticsService = Depends(get_analytics)
):
    """
    Events grouped by day, newest day and newest event first.

    - **structure**: `all`, `parents` (root events) or `subs` (sub-events)
    """
    try:
        return await service.get_timeline(owner_id, range, structure)
    except Exception as e:
        logger.error("timeline_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to fetch timeline")


@router.get("/reflection", response_model=ReflectionResponse)
async def get_weekly_reflection(
        owner_id: str = Depends(get_owner_id),
        service: AnalyticsService = Depends(get_analytics)
):
    """Narrative reflection over the last 7 days"""
    try:
        return await service.get_weekly_reflection(owner_id)
    except Exception as e:
        logger.error("weekly_reflection_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to build weekly reflection")
