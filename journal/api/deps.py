from zoneinfo import ZoneInfo

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from journal.core.config import Settings
from journal.core.database import get_db
from journal.services.analytics import AnalyticsService
from journal.services.event_store import EventStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_owner_id(x_user_id: str | None = Header(default=None)) -> str:
    """Owner id of the already-authenticated caller"""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header"
        )
    return x_user_id.strip()


async def require_admin(
        owner_id: str = Depends(get_owner_id),
        config: Settings = Depends(get_settings)
) -> str:
    if owner_id not in config.admin_user_ids:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return owner_id


def get_store(
        request: Request,
        db: AsyncSession = Depends(get_db),
        config: Settings = Depends(get_settings)
) -> EventStore:
    return EventStore(db, lock=request.app.state.owner_lock, retries=config.write_retries)


def get_analytics(
        db: AsyncSession = Depends(get_db),
        config: Settings = Depends(get_settings)
) -> AnalyticsService:
    return AnalyticsService(db, tz=ZoneInfo(config.timezone))
