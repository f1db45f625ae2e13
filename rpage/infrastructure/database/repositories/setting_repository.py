"""SQLAlchemy repository for key/value settings."""

from __future__ import annotations

from typing import Mapping

from sqlalchemy import select

from rpage.db.models import Setting as SettingModel
from rpage.domain.common import AsyncRepository


class SqlSettingRepository(AsyncRepository[SettingModel]):
    async def list_all(self) -> dict[str, str]:
        result = await self.session.execute(select(SettingModel))
        return {setting.key: setting.value for setting in result.scalars().all()}

    async def get(self, key: str) -> str | None:
        model = await self.session.get(SettingModel, key)
        return model.value if model else None

    async def upsert_many(self, values: Mapping[str, str]) -> None:
        for key, value in values.items():
            await self.session.merge(SettingModel(key=key, value=value))
        await self.session.flush()

    async def insert_missing(self, values: Mapping[str, str]) -> int:
        existing = await self.list_all()
        missing = [SettingModel(key=key, value=value) for key, value in values.items() if key not in existing]
        if missing:
            await self.add_all(missing)
        return len(missing)
