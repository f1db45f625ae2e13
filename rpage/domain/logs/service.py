"""Domain service for run log operations."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from rpage.infrastructure.database.repositories.log_repository import SqlLogRepository

from .models import LogEntry, LogPage
from .repository import LogRepository

LOG_STATUSES = frozenset({"completed", "failed"})


@dataclass(slots=True)
class LogService:
    repository: LogRepository

    @classmethod
    def with_session(cls, session: AsyncSession) -> "LogService":
        return cls(SqlLogRepository(session))

    async def create_log(
        self,
        *,
        automation_id: str,
        automation_name: str,
        status: str,
        output: str,
    ) -> LogEntry:
        if status not in LOG_STATUSES:
            raise ValueError(f"Unsupported log status: {status}")
        model = await self.repository.add_log(
            automation_id=automation_id,
            automation_name=automation_name,
            status=status,
            output=output,
        )
        return LogEntry.from_orm(model)

    async def list_logs(self, page: int = 1, limit: int = 10) -> LogPage:
        page = max(page, 1)
        models, total = await self.repository.list_logs((page - 1) * limit, limit)
        return LogPage(
            logs=[LogEntry.from_orm(model) for model in models],
            total=total,
            page=page,
            limit=limit,
        )

    async def list_for_automation(self, automation_id: str) -> list[LogEntry]:
        models = await self.repository.list_by_automation(automation_id)
        return [LogEntry.from_orm(model) for model in models]

    async def clear_logs(self) -> int:
        return await self.repository.clear()
