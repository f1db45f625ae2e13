"""On-demand retention sweep."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rpage.api.deps import get_app_settings, get_db_session
from rpage.core.config import Settings
from rpage.domain.outputs import OutputService
from rpage.domain.settings import SettingService
from rpage.schemas import CleanupResponse, CleanupResult

router = APIRouter()


@router.post("/maintenance/cleanup", response_model=CleanupResponse)
async def cleanup_outputs(
    db: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
):
    days = await SettingService.with_session(db).get_retention_days(settings.retention.default_keep_days)
    result = await OutputService.with_session(db).cleanup_old_outputs(days)
    await db.commit()
    return CleanupResponse(
        message=f"Cleaned up {result.deleted} old outputs",
        data=CleanupResult.model_validate(result),
    )
