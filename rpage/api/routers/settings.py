"""Key/value application settings."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rpage.api.deps import get_db_session
from rpage.domain.settings import SettingService
from rpage.schemas import SettingsResponse

router = APIRouter()


@router.get("", response_model=SettingsResponse)
async def get_settings(db: AsyncSession = Depends(get_db_session)):
    return SettingsResponse(data=await SettingService.with_session(db).get_all())


@router.post("", response_model=SettingsResponse)
async def save_settings(
    values: dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db_session),
):
    saved = await SettingService.with_session(db).save_all(values)
    await db.commit()
    return SettingsResponse(data=saved)
