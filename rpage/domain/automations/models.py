"""Automation domain models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional

from rpage.db import models as orm
from rpage.domain.common.time import ensure_utc

AutomationStatus = Literal["idle", "running", "completed", "failed"]

STATUS_IDLE = "idle"
STATUS_RUNNING = "running"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"

TERMINAL_STATUSES = frozenset({STATUS_COMPLETED, STATUS_FAILED})

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    STATUS_IDLE: frozenset({STATUS_RUNNING}),
    STATUS_RUNNING: TERMINAL_STATUSES,
    STATUS_COMPLETED: frozenset({STATUS_IDLE}),
    STATUS_FAILED: frozenset({STATUS_IDLE}),
}


@dataclass(slots=True)
class Automation:
    id: str
    name: str
    description: str
    script: str
    status: str
    created_at: datetime
    updated_at: Optional[datetime]

    @classmethod
    def from_orm(cls, instance: orm.Automation) -> "Automation":
        return cls(
            id=str(instance.id),
            name=instance.name,
            description=instance.description or "",
            script=instance.script,
            status=instance.status,
            created_at=ensure_utc(instance.created_at),
            updated_at=ensure_utc(instance.updated_at),
        )
