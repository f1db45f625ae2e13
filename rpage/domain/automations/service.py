"""Domain service for automation records and their run status."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from rpage.db.models import generate_uuid
from rpage.infrastructure.database.repositories.automation_repository import SqlAutomationRepository

from .exceptions import (
    AutomationAlreadyExistsError,
    AutomationNotFoundError,
    InvalidStatusTransitionError,
)
from .models import (
    ALLOWED_TRANSITIONS,
    STATUS_IDLE,
    STATUS_RUNNING,
    TERMINAL_STATUSES,
    Automation,
)
from .repository import AutomationRepository
from .sample import (
    SAMPLE_AUTOMATION_DESCRIPTION,
    SAMPLE_AUTOMATION_ID,
    SAMPLE_AUTOMATION_NAME,
    SAMPLE_SCRIPT,
)

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({"name", "description", "script"})


@dataclass(slots=True)
class AutomationService:
    repository: AutomationRepository

    @classmethod
    def with_session(cls, session: AsyncSession) -> "AutomationService":
        return cls(SqlAutomationRepository(session))

    async def get_automation(self, automation_id: str) -> Automation | None:
        model = await self.repository.get_by_id(automation_id)
        return Automation.from_orm(model) if model else None

    async def require_automation(self, automation_id: str) -> Automation:
        automation = await self.get_automation(automation_id)
        if automation is None:
            raise AutomationNotFoundError(f"Automation {automation_id} not found")
        return automation

    async def list_automations(self) -> list[Automation]:
        models = await self.repository.list_all()
        return [Automation.from_orm(model) for model in models]

    async def create_automation(
        self,
        *,
        name: str,
        script: str,
        description: str = "",
        automation_id: Optional[str] = None,
    ) -> Automation:
        automation_id = automation_id or generate_uuid()
        if await self.repository.get_by_id(automation_id) is not None:
            raise AutomationAlreadyExistsError(f"Automation {automation_id} already exists")
        model = await self.repository.create(
            automation_id=automation_id,
            name=name,
            description=description,
            script=script,
        )
        logger.info("Created automation %s (%s)", model.id, model.name)
        return Automation.from_orm(model)

    async def update_automation(self, automation_id: str, **updates) -> Automation:
        values = {key: value for key, value in updates.items() if key in EDITABLE_FIELDS and value is not None}
        model = await self.repository.update(automation_id, values)
        if model is None:
            raise AutomationNotFoundError(f"Automation {automation_id} not found")
        return Automation.from_orm(model)

    async def delete_automation(self, automation_id: str) -> None:
        deleted = await self.repository.delete(automation_id)
        if not deleted:
            raise AutomationNotFoundError(f"Automation {automation_id} not found")

    async def transition(self, automation_id: str, status: str) -> Automation:
        """Move an automation along idle → running → completed/failed → idle."""
        model = await self.repository.get_by_id(automation_id)
        if model is None:
            raise AutomationNotFoundError(f"Automation {automation_id} not found")
        current = model.status
        if current == status:
            return Automation.from_orm(model)
        if status not in ALLOWED_TRANSITIONS.get(current, frozenset()):
            raise InvalidStatusTransitionError(f"Cannot move automation {automation_id} from {current} to {status}")
        updated = await self.repository.update_status(automation_id, status)
        logger.debug("Automation %s status %s -> %s", automation_id, current, status)
        return Automation.from_orm(updated)

    async def mark_running(self, automation_id: str) -> Automation:
        """Enter the running state, settling a finished run back to idle first."""
        automation = await self.require_automation(automation_id)
        if automation.status in TERMINAL_STATUSES:
            await self.transition(automation_id, STATUS_IDLE)
        return await self.transition(automation_id, STATUS_RUNNING)

    async def reset_to_idle(self, automation_id: str) -> bool:
        """Settle a finished run back to idle; returns False when nothing changed."""
        automation = await self.get_automation(automation_id)
        if automation is None or automation.status not in TERMINAL_STATUSES:
            return False
        await self.transition(automation_id, STATUS_IDLE)
        return True

    async def reset_stale_runs(self) -> int:
        """Statuses left behind by a previous process can never finish on their own."""
        return await self.repository.reset_statuses(
            [STATUS_RUNNING, *sorted(TERMINAL_STATUSES)],
            STATUS_IDLE,
        )

    async def seed_sample_if_empty(self) -> Automation | None:
        if await self.repository.count():
            return None
        logger.info("No automations found, inserting sample automation")
        return await self.create_automation(
            automation_id=SAMPLE_AUTOMATION_ID,
            name=SAMPLE_AUTOMATION_NAME,
            description=SAMPLE_AUTOMATION_DESCRIPTION,
            script=SAMPLE_SCRIPT,
        )
