"""SQLAlchemy repository for run logs."""

from __future__ import annotations

from typing import Sequence

from sqlalchemy import delete, select

from rpage.db.models import LogEntry as LogEntryModel
from rpage.domain.common import AsyncRepository
from rpage.domain.common.time import utcnow


class SqlLogRepository(AsyncRepository[LogEntryModel]):
    async def add_log(
        self,
        *,
        automation_id: str,
        automation_name: str,
        status: str,
        output: str,
    ) -> LogEntryModel:
        model = LogEntryModel(
            automation_id=automation_id,
            automation_name=automation_name,
            status=status,
            output=output,
            timestamp=utcnow(),
        )
        await self.add(model)
        await self.session.refresh(model)
        return model

    async def list_logs(self, offset: int, limit: int) -> tuple[Sequence[LogEntryModel], int]:
        stmt = (
            select(LogEntryModel)
            .order_by(LogEntryModel.timestamp.desc(), LogEntryModel.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return await self.fetch_all(stmt), await self.count_rows(LogEntryModel.id)

    async def list_by_automation(self, automation_id: str) -> Sequence[LogEntryModel]:
        stmt = (
            select(LogEntryModel)
            .where(LogEntryModel.automation_id == automation_id)
            .order_by(LogEntryModel.timestamp.desc())
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def clear(self) -> int:
        result = await self.session.execute(delete(LogEntryModel))
        return int(result.rowcount or 0)
