"""SQLAlchemy implementation for OutputRepository"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Sequence

from sqlalchemy import delete, select

from rpage.db.models import OutputArtifact
from rpage.domain.common import AsyncRepository
from rpage.domain.common.time import utcnow


class SqlOutputRepository(AsyncRepository[OutputArtifact]):
    async def create(
        self,
        *,
        automation_id: str,
        name: str,
        type: str,
        data: str,
        timestamp: datetime | None = None,
    ) -> OutputArtifact:
        output = OutputArtifact(
            automation_id=automation_id,
            name=name,
            type=type,
            data=data,
            timestamp=timestamp or utcnow(),
        )
        await self.add(output)
        await self.session.refresh(output)
        return output

    async def get_by_id(self, output_id: str) -> OutputArtifact | None:
        stmt = select(OutputArtifact).where(OutputArtifact.id == output_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_page(
        self, offset: int, limit: int, descending: bool = True
    ) -> tuple[Sequence[OutputArtifact], int]:
        if descending:
            ordering = (OutputArtifact.timestamp.desc(), OutputArtifact.id.desc())
        else:
            ordering = (OutputArtifact.timestamp.asc(), OutputArtifact.id.asc())
        stmt = select(OutputArtifact).order_by(*ordering).offset(offset).limit(limit)
        return await self.fetch_all(stmt), await self.count_rows(OutputArtifact.id)

    async def list_by_automation(self, automation_id: str) -> Sequence[OutputArtifact]:
        stmt = (
            select(OutputArtifact)
            .where(OutputArtifact.automation_id == automation_id)
            .order_by(OutputArtifact.timestamp.desc())
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def list_by_type(self, type: str) -> Sequence[OutputArtifact]:
        stmt = (
            select(OutputArtifact)
            .where(OutputArtifact.type == type)
            .order_by(OutputArtifact.timestamp.desc())
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def ids_older_than(self, cutoff: datetime) -> list[str]:
        stmt = select(OutputArtifact.id).where(OutputArtifact.timestamp < cutoff)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def ids_not_of_type(self, type: str) -> list[str]:
        stmt = select(OutputArtifact.id).where(OutputArtifact.type != type)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete(self, output_id: str) -> bool:
        stmt = delete(OutputArtifact).where(OutputArtifact.id == output_id)
        result = await self.session.execute(stmt)
        return bool(result.rowcount)

    async def delete_many(self, output_ids: Iterable[str]) -> int:
        ids = list(output_ids)
        if not ids:
            return 0
        stmt = delete(OutputArtifact).where(OutputArtifact.id.in_(ids))
        result = await self.session.execute(stmt)
        return int(result.rowcount or 0)
