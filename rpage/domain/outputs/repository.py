"""Repository protocol for output artifact persistence"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Protocol, Sequence

from rpage.db.models import OutputArtifact as OutputArtifactModel


class OutputRepository(Protocol):
    async def create(
        self,
        *,
        automation_id: str,
        name: str,
        type: str,
        data: str,
        timestamp: datetime | None = None,
    ) -> OutputArtifactModel:
        ...

    async def get_by_id(self, output_id: str) -> OutputArtifactModel | None:
        ...

    async def list_page(
        self, offset: int, limit: int, descending: bool = True
    ) -> tuple[Sequence[OutputArtifactModel], int]:
        ...

    async def list_by_automation(self, automation_id: str) -> Sequence[OutputArtifactModel]:
        ...

    async def list_by_type(self, type: str) -> Sequence[OutputArtifactModel]:
        ...

    async def ids_older_than(self, cutoff: datetime) -> list[str]:
        ...

    async def ids_not_of_type(self, type: str) -> list[str]:
        ...

    async def delete(self, output_id: str) -> bool:
        ...

    async def delete_many(self, output_ids: Iterable[str]) -> int:
        ...
