"""Run log history."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rpage.api.deps import get_db_session
from rpage.domain.logs import LogService
from rpage.schemas import LogListResponse, LogResponse, MessageResponse

router = APIRouter()


@router.get("/logs", response_model=LogListResponse)
async def list_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db_session),
):
    result = await LogService.with_session(db).list_logs(page=page, limit=limit)
    return LogListResponse(
        data=[LogResponse.model_validate(item) for item in result.logs],
        total=result.total,
        page=result.page,
        limit=result.limit,
        has_more=result.has_more,
    )


@router.get("/logs-direct", response_model=list[LogResponse])
async def list_logs_direct(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db_session),
):
    result = await LogService.with_session(db).list_logs(page=page, limit=limit)
    return [LogResponse.model_validate(item) for item in result.logs]


@router.delete("/logs", response_model=MessageResponse)
async def clear_logs(db: AsyncSession = Depends(get_db_session)):
    removed = await LogService.with_session(db).clear_logs()
    await db.commit()
    return MessageResponse(message=f"All logs cleared ({removed} removed)")
