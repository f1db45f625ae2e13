"""Domain service for output artifacts and their retention policy."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from rpage.domain.automations.exceptions import AutomationNotFoundError
from rpage.domain.automations.repository import AutomationRepository
from rpage.domain.common.time import utcnow
from rpage.infrastructure.database.repositories.automation_repository import SqlAutomationRepository
from rpage.infrastructure.database.repositories.output_repository import SqlOutputRepository

from .models import SCREENSHOT_TYPE, OutputArtifact, OutputPage, RetentionResult
from .repository import OutputRepository

logger = logging.getLogger(__name__)


def stringify_data(data: Any) -> str:
    """Artifacts always store text; anything else is JSON-encoded."""
    if isinstance(data, str):
        return data
    try:
        return json.dumps(data, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        logger.warning("Failed to convert output data to JSON: %s", exc)
        return str(data)


@dataclass(slots=True)
class OutputService:
    repository: OutputRepository
    automations: AutomationRepository

    @classmethod
    def with_session(cls, session: AsyncSession) -> "OutputService":
        return cls(SqlOutputRepository(session), SqlAutomationRepository(session))

    async def save_output(
        self,
        automation_id: str,
        data: Any,
        name: str,
        type: str = "text",
        *,
        timestamp: Optional[datetime] = None,
    ) -> OutputArtifact:
        if await self.automations.get_by_id(automation_id) is None:
            raise AutomationNotFoundError(f"Cannot save output: automation {automation_id} does not exist")
        model = await self.repository.create(
            automation_id=automation_id,
            name=name,
            type=type,
            data=stringify_data(data),
            timestamp=timestamp,
        )
        logger.info("Saved output %s for automation %s: %s (type: %s)", model.id, automation_id, name, type)
        return OutputArtifact.from_orm(model)

    async def get_output(self, output_id: str) -> OutputArtifact | None:
        model = await self.repository.get_by_id(output_id)
        return OutputArtifact.from_orm(model) if model else None

    async def list_outputs(
        self,
        page: int = 1,
        limit: int = 20,
        skip: int = 0,
        sort: str = "desc",
    ) -> OutputPage:
        """Page through artifacts; ``skip`` shifts past a separately fetched priority slice."""
        page = max(page, 1)
        limit = max(limit, 1)
        skip = max(skip, 0)
        offset = (page - 1) * limit + skip
        models, total = await self.repository.list_page(offset, limit, descending=sort != "asc")
        return OutputPage(
            files=[OutputArtifact.from_orm(model) for model in models],
            total=total,
            page=page,
            limit=limit,
            skip=skip,
        )

    async def list_for_automation(self, automation_id: str) -> list[OutputArtifact]:
        models = await self.repository.list_by_automation(automation_id)
        return [OutputArtifact.from_orm(model) for model in models]

    async def list_by_type(self, type: str) -> list[OutputArtifact]:
        models = await self.repository.list_by_type(type)
        return [OutputArtifact.from_orm(model) for model in models]

    async def delete_output(self, output_id: str) -> str | None:
        deleted = await self.repository.delete(output_id)
        return output_id if deleted else None

    async def cleanup_old_outputs(self, days: int, *, now: Optional[datetime] = None) -> RetentionResult:
        """Drop artifacts older than ``days`` plus every artifact that is not a screenshot."""
        cutoff = (now or utcnow()) - timedelta(days=days)
        old_ids = await self.repository.ids_older_than(cutoff)
        non_screenshot_ids = await self.repository.ids_not_of_type(SCREENSHOT_TYPE)
        to_delete = set(old_ids) | set(non_screenshot_ids)
        deleted = await self.repository.delete_many(to_delete)
        result = RetentionResult(
            deleted=deleted,
            old_outputs_removed=len(old_ids),
            non_screenshots_removed=len(non_screenshot_ids),
        )
        logger.info(
            "Cleaned up %s outputs (%s non-screenshots and %s old outputs, cutoff %s)",
            result.deleted,
            result.non_screenshots_removed,
            result.old_outputs_removed,
            cutoff.isoformat(),
        )
        return result
