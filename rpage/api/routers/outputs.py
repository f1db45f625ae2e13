"""Output artifact listing, lookup and deletion."""
from __future__ import annotations

import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from rpage.api.deps import get_db_session
from rpage.domain.outputs import OutputService
from rpage.schemas import (
    DeletedId,
    OutputDeleteResponse,
    OutputDetailResponse,
    OutputListResponse,
    OutputResponse,
    OutputTypeListResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/outputs", response_model=OutputListResponse)
async def list_outputs(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
    skip: int = Query(0, ge=0),
    sort: Literal["asc", "desc"] = Query("desc"),
    db: AsyncSession = Depends(get_db_session),
):
    result = await OutputService.with_session(db).list_outputs(page=page, limit=limit, skip=skip, sort=sort)
    logger.debug("Retrieved %s outputs (page %s, skip %s) of %s", len(result.files), page, skip, result.total)
    return OutputListResponse(
        files=[OutputResponse.model_validate(item) for item in result.files],
        count=len(result.files),
        total=result.total,
        page=result.page,
        limit=result.limit,
        has_more=result.has_more,
    )


@router.get("/outputs-direct", response_model=list[OutputResponse])
async def list_outputs_direct(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
    skip: int = Query(0, ge=0),
    sort: Literal["asc", "desc"] = Query("desc"),
    db: AsyncSession = Depends(get_db_session),
):
    result = await OutputService.with_session(db).list_outputs(page=page, limit=limit, skip=skip, sort=sort)
    return [OutputResponse.model_validate(item) for item in result.files]


@router.get("/outputs/type/{output_type}", response_model=OutputTypeListResponse)
async def list_outputs_by_type(output_type: str, db: AsyncSession = Depends(get_db_session)):
    files = await OutputService.with_session(db).list_by_type(output_type)
    return OutputTypeListResponse(files=[OutputResponse.model_validate(item) for item in files], count=len(files))


@router.get("/outputs/{output_id}", response_model=OutputDetailResponse)
async def get_output(output_id: str, db: AsyncSession = Depends(get_db_session)):
    output = await OutputService.with_session(db).get_output(output_id)
    if output is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Output not found")
    return OutputDetailResponse(data=OutputResponse.model_validate(output))


@router.delete("/outputs/{output_id}", response_model=OutputDeleteResponse)
async def delete_output(output_id: str, db: AsyncSession = Depends(get_db_session)):
    deleted = await OutputService.with_session(db).delete_output(output_id)
    if deleted is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Output not found")
    await db.commit()
    return OutputDeleteResponse(data=DeletedId(id=deleted))
