"""Repository protocol for persisting run logs."""

from __future__ import annotations

from typing import Protocol, Sequence

from rpage.db.models import LogEntry as LogEntryModel


class LogRepository(Protocol):
    async def add_log(
        self,
        *,
        automation_id: str,
        automation_name: str,
        status: str,
        output: str,
    ) -> LogEntryModel:
        ...

    async def list_logs(self, offset: int, limit: int) -> tuple[Sequence[LogEntryModel], int]:
        ...

    async def list_by_automation(self, automation_id: str) -> Sequence[LogEntryModel]:
        ...

    async def clear(self) -> int:
        ...
