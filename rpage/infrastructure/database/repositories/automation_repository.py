"""SQLAlchemy powered repository for automation persistence."""

from __future__ import annotations

from typing import Iterable, Sequence

from sqlalchemy import delete, select, update

from rpage.db.models import Automation as AutomationModel
from rpage.domain.common import AsyncRepository
from rpage.domain.common.time import utcnow


class SqlAutomationRepository(AsyncRepository[AutomationModel]):
    async def get_by_id(self, automation_id: str) -> AutomationModel | None:
        stmt = select(AutomationModel).where(AutomationModel.id == automation_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_all(self) -> Sequence[AutomationModel]:
        stmt = select(AutomationModel).order_by(AutomationModel.updated_at.desc())
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def count(self) -> int:
        return await self.count_rows(AutomationModel.id)

    async def create(
        self,
        *,
        automation_id: str,
        name: str,
        description: str,
        script: str,
    ) -> AutomationModel:
        now = utcnow()
        model = AutomationModel(
            id=automation_id,
            name=name,
            description=description,
            script=script,
            status="idle",
            created_at=now,
            updated_at=now,
        )
        await self.add(model)
        await self.session.refresh(model)
        return model

    async def update(self, automation_id: str, values: dict) -> AutomationModel | None:
        model = await self.get_by_id(automation_id)
        if model is None:
            return None
        for key, value in values.items():
            setattr(model, key, value)
        model.updated_at = utcnow()
        await self.session.flush()
        await self.session.refresh(model)
        return model

    async def delete(self, automation_id: str) -> bool:
        stmt = delete(AutomationModel).where(AutomationModel.id == automation_id)
        result = await self.session.execute(stmt)
        return bool(result.rowcount)

    async def update_status(self, automation_id: str, status: str) -> AutomationModel | None:
        stmt = (
            update(AutomationModel)
            .where(AutomationModel.id == automation_id)
            .values(status=status, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        await self.session.execute(stmt)
        model = await self.get_by_id(automation_id)
        if model is not None:
            await self.session.refresh(model)
        return model

    async def reset_statuses(self, statuses: Iterable[str], status: str) -> int:
        stmt = (
            update(AutomationModel)
            .where(AutomationModel.status.in_(list(statuses)))
            .values(status=status, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return int(result.rowcount or 0)
