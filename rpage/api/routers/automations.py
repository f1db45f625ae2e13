"""CRUD endpoints for automation definitions."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from rpage.api.deps import get_db_session
from rpage.domain.automations import (
    AutomationAlreadyExistsError,
    AutomationNotFoundError,
    AutomationService,
)
from rpage.schemas import (
    AutomationCreate,
    AutomationDeleteResponse,
    AutomationDetailResponse,
    AutomationListResponse,
    AutomationResponse,
    AutomationUpdate,
    DeletedId,
)

router = APIRouter()


@router.get("", response_model=AutomationListResponse)
async def list_automations(db: AsyncSession = Depends(get_db_session)):
    automations = await AutomationService.with_session(db).list_automations()
    return AutomationListResponse(data=[AutomationResponse.model_validate(item) for item in automations])


@router.post("", response_model=AutomationDetailResponse)
async def create_automation(payload: AutomationCreate, db: AsyncSession = Depends(get_db_session)):
    if not payload.name or not payload.script:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Name and script are required")
    try:
        automation = await AutomationService.with_session(db).create_automation(
            automation_id=payload.id,
            name=payload.name,
            description=payload.description,
            script=payload.script,
        )
    except AutomationAlreadyExistsError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    await db.commit()
    return AutomationDetailResponse(data=AutomationResponse.model_validate(automation))


@router.get("/{automation_id}", response_model=AutomationDetailResponse)
async def get_automation(automation_id: str, db: AsyncSession = Depends(get_db_session)):
    automation = await AutomationService.with_session(db).get_automation(automation_id)
    if automation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Automation not found")
    return AutomationDetailResponse(data=AutomationResponse.model_validate(automation))


@router.put("/{automation_id}", response_model=AutomationDetailResponse)
async def update_automation(
    automation_id: str,
    payload: AutomationUpdate,
    db: AsyncSession = Depends(get_db_session),
):
    try:
        automation = await AutomationService.with_session(db).update_automation(
            automation_id,
            **payload.model_dump(exclude_unset=True),
        )
    except AutomationNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Automation not found") from exc
    await db.commit()
    return AutomationDetailResponse(data=AutomationResponse.model_validate(automation))


@router.delete("/{automation_id}", response_model=AutomationDeleteResponse)
async def delete_automation(automation_id: str, db: AsyncSession = Depends(get_db_session)):
    try:
        await AutomationService.with_session(db).delete_automation(automation_id)
    except AutomationNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Automation not found") from exc
    await db.commit()
    return AutomationDeleteResponse(data=DeletedId(id=automation_id))
