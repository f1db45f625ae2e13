"""Domain service for application settings stored as strings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from rpage.infrastructure.database.repositories.setting_repository import SqlSettingRepository

from .repository import SettingRepository

logger = logging.getLogger(__name__)

KEEP_OUTPUT_DAYS = "keepOutputDays"

DEFAULT_SETTINGS: dict[str, str] = {
    "notificationsEnabled": "true",
    "darkTheme": "true",
    KEEP_OUTPUT_DAYS: "7",
}


def coerce_value(raw: str) -> Any:
    if raw == "true":
        return True
    if raw == "false":
        return False
    stripped = raw.strip()
    if stripped:
        try:
            return int(stripped)
        except ValueError:
            pass
        try:
            return float(stripped)
        except ValueError:
            pass
    return raw


def serialize_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(slots=True)
class SettingService:
    repository: SettingRepository

    @classmethod
    def with_session(cls, session: AsyncSession) -> "SettingService":
        return cls(SqlSettingRepository(session))

    async def get_all(self) -> dict[str, Any]:
        stored = await self.repository.list_all()
        return {key: coerce_value(value) for key, value in stored.items()}

    async def save_all(self, values: Mapping[str, Any]) -> dict[str, Any]:
        """Write every key in one transaction; the caller's session commits."""
        await self.repository.upsert_many({key: serialize_value(value) for key, value in values.items()})
        logger.info("Saved settings: %s", ", ".join(sorted(values)) or "<none>")
        return await self.get_all()

    async def ensure_defaults(self) -> int:
        return await self.repository.insert_missing(DEFAULT_SETTINGS)

    async def get_retention_days(self, default: int = 7) -> int:
        raw = await self.repository.get(KEEP_OUTPUT_DAYS)
        if raw is None:
            return default
        value = coerce_value(raw)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            logger.warning("Ignoring invalid %s setting %r, using %s", KEEP_OUTPUT_DAYS, raw, default)
            return default
        return int(value)
