"""Output artifact domain models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from rpage.db import models as orm
from rpage.domain.common.time import ensure_utc

SCREENSHOT_TYPE = "screenshot"


@dataclass(slots=True)
class OutputArtifact:
    id: str
    automation_id: str
    name: str
    type: str
    data: str | None
    timestamp: datetime

    @classmethod
    def from_orm(cls, instance: orm.OutputArtifact) -> "OutputArtifact":
        return cls(
            id=str(instance.id),
            automation_id=instance.automation_id,
            name=instance.name,
            type=instance.type,
            data=instance.data,
            timestamp=ensure_utc(instance.timestamp),
        )


@dataclass(slots=True)
class OutputPage:
    files: list[OutputArtifact]
    total: int
    page: int
    limit: int
    skip: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit + self.skip

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.files) < self.total


@dataclass(slots=True, frozen=True)
class RetentionResult:
    deleted: int
    old_outputs_removed: int
    non_screenshots_removed: int
