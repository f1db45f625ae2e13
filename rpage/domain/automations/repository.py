"""Repository protocol for automation persistence operations."""

from __future__ import annotations

from typing import Iterable, Protocol, Sequence

from rpage.db.models import Automation as AutomationModel


class AutomationRepository(Protocol):
    async def get_by_id(self, automation_id: str) -> AutomationModel | None:
        ...

    async def list_all(self) -> Sequence[AutomationModel]:
        ...

    async def count(self) -> int:
        ...

    async def create(
        self,
        *,
        automation_id: str,
        name: str,
        description: str,
        script: str,
    ) -> AutomationModel:
        ...

    async def update(self, automation_id: str, values: dict) -> AutomationModel | None:
        ...

    async def delete(self, automation_id: str) -> bool:
        ...

    async def update_status(self, automation_id: str, status: str) -> AutomationModel | None:
        ...

    async def reset_statuses(self, statuses: Iterable[str], status: str) -> int:
        ...
