"""Run log domain models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from rpage.db import models as orm
from rpage.domain.common.time import ensure_utc


@dataclass(slots=True)
class LogEntry:
    id: str
    automation_id: str
    automation_name: str
    status: str
    output: str
    timestamp: datetime

    @classmethod
    def from_orm(cls, instance: orm.LogEntry) -> "LogEntry":
        return cls(
            id=str(instance.id),
            automation_id=instance.automation_id,
            automation_name=instance.automation_name,
            status=instance.status,
            output=instance.output or "",
            timestamp=ensure_utc(instance.timestamp),
        )


@dataclass(slots=True)
class LogPage:
    """Simplified view used for listings with pagination."""

    logs: list[LogEntry]
    total: int
    page: int
    limit: int

    @property
    def has_more(self) -> bool:
        return (self.page - 1) * self.limit + len(self.logs) < self.total
