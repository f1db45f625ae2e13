"""Repository protocol for key/value settings."""

from __future__ import annotations

from typing import Mapping, Protocol


class SettingRepository(Protocol):
    async def list_all(self) -> dict[str, str]:
        ...

    async def get(self, key: str) -> str | None:
        ...

    async def upsert_many(self, values: Mapping[str, str]) -> None:
        ...

    async def insert_missing(self, values: Mapping[str, str]) -> int:
        ...
