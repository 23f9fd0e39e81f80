from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from journal.api.deps import get_settings, require_admin
from journal.core.config import Settings
from journal.core.database import get_db
from journal.services.demo_data import DemoDataService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/demo-data", status_code=status.HTTP_201_CREATED)
async def generate_demo_data(
        owner_id: str = Depends(require_admin),
        db: AsyncSession = Depends(get_db),
        config: Settings = Depends(get_settings)
):
    """Seed flagged demo parents, sub-events and notes for the calling admin"""
    created = await DemoDataService(db).generate(
        owner_id,
        parent_count=config.demo_parent_count,
        subs_per_parent=config.demo_subs_per_parent,
        notes_per_event=config.demo_notes_per_event
    )
    return {"ok": True, "message": "Demo data generated", "created": created}


@router.delete("/demo-data")
async def clear_demo_data(
        owner_id: str = Depends(require_admin),
        db: AsyncSession = Depends(get_db)
):
    """Remove the calling admin's demo data"""
    deleted = await DemoDataService(db).clear(owner_id)
    return {"ok": True, "message": "Demo data cleared", "deleted": deleted}
