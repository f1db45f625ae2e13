"""Base class for the SQL repositories behind the domain services."""

from __future__ import annotations

from typing import Any, Generic, Sequence, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

ModelT = TypeVar("ModelT")


class AsyncRepository(Generic[ModelT]):
    """Holds the request or background session; the caller owns the transaction."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @property
    def session(self) -> AsyncSession:
        return self._session

    async def add(self, instance: ModelT) -> ModelT:
        self.session.add(instance)
        await self.session.flush()
        return instance

    async def add_all(self, instances: list[ModelT]) -> list[ModelT]:
        self.session.add_all(instances)
        await self.session.flush()
        return instances

    async def fetch_all(self, stmt: Select) -> Sequence[ModelT]:
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def count_rows(self, column: Any) -> int:
        total = (await self.session.execute(select(func.count(column)))).scalar()
        return int(total or 0)
