"""Incremental artifact feed: priority slice, pagination, grouping, optimistic deletes."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from .api import ApiError, RpageClient
from .cache import TTLCache
from .parsing import ParseQueue

logger = logging.getLogger(__name__)

PAGE_SIZE = 30
PRIORITY_FILES_COUNT = 5
GROUPED_CACHE_TTL = 3.0
GROUPED_REMAINING_LIMIT = 50
REFRESH_INTERVAL = 5.0

_GROUPED_KEY = "grouped"
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _timestamp_key(file: dict[str, Any]) -> datetime:
    raw = file.get("timestamp")
    if not isinstance(raw, str):
        return _EPOCH
    try:
        value = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return _EPOCH
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class OutputFeed:
    def __init__(
        self,
        client: RpageClient,
        *,
        parser: Optional[ParseQueue] = None,
        clock: Callable[[], float] = time.monotonic,
        page_size: int = PAGE_SIZE,
        priority_count: int = PRIORITY_FILES_COUNT,
        refresh_interval: float = REFRESH_INTERVAL,
    ) -> None:
        self.client = client
        self.parser = parser or ParseQueue()
        self.page_size = page_size
        self.priority_count = priority_count
        self.refresh_interval = refresh_interval
        self._clock = clock
        self._grouped: TTLCache[dict[str, list[dict[str, Any]]]] = TTLCache(GROUPED_CACHE_TTL, clock=clock)
        self._last_refresh: Optional[float] = None
        self.reset()

    def reset(self) -> None:
        self.priority_files: list[dict[str, Any]] = []
        self.files: list[dict[str, Any]] = []
        self.priority_loaded = False
        self.page = 1
        self.has_more = True
        self.total: Optional[int] = None
        self.loading = False
        self._grouped.clear()
        self.parser.clear()

    @property
    def all_files(self) -> list[dict[str, Any]]:
        return [*self.priority_files, *self.files]

    def view(self, file: dict[str, Any]) -> Any:
        return self.parser.get(file)

    async def refresh(self, *, force: bool = False) -> bool:
        """Reload from the first page unless data is fresh; returns whether it reloaded."""
        now = self._clock()
        recent = self._last_refresh is not None and now - self._last_refresh < self.refresh_interval
        if not force and recent and (self.files or self.priority_files):
            logger.debug("Skipping outputs refresh, last refresh was %.1fs ago", now - self._last_refresh)
            return False
        self._last_refresh = now
        self.reset()
        await self.load_priority()
        await self.load_more()
        return True

    async def load_priority(self) -> None:
        self.loading = True
        try:
            listing = await self.client.list_outputs(page=1, limit=self.priority_count, sort="desc")
            if listing.files:
                self.priority_files = listing.files[: self.priority_count]
            self.priority_loaded = True
            self._grouped.clear()
            for file in self.priority_files:
                self.parser.enqueue(file)
        except ApiError as exc:
            logger.error("Error loading priority output files: %s", exc)
        finally:
            self.loading = False

    async def load_more(self) -> None:
        if self.loading or not self.has_more:
            return
        self.loading = True
        try:
            skip = self.priority_count if self.priority_loaded else 0
            listing = await self.client.list_outputs(page=self.page, limit=self.page_size, skip=skip)
            new_files = listing.files
            if len(new_files) < self.page_size:
                self.has_more = False
            else:
                self.page += 1
            if listing.total:
                self.total = listing.total

            known = {file.get("id") for file in self.all_files}
            new_files = [file for file in new_files if file.get("id") not in known]
            if new_files:
                self.files.extend(new_files)
                self._grouped.clear()
                for file in new_files:
                    self.parser.enqueue(file)
        except ApiError as exc:
            logger.error("Error loading output files: %s", exc)
            self.has_more = False
        finally:
            self.loading = False

    async def load_all(self) -> None:
        while self.has_more:
            before = (self.page, len(self.files))
            await self.load_more()
            if self.has_more and (self.page, len(self.files)) == before:
                break

    def grouped_by_type(self) -> dict[str, list[dict[str, Any]]]:
        cached = self._grouped.get(_GROUPED_KEY)
        if cached is not None:
            return cached
        grouped: dict[str, list[dict[str, Any]]] = {}
        for file in self.priority_files:
            grouped.setdefault(file.get("type") or "other", []).append(file)
        priority_ids = {file.get("id") for file in self.priority_files}
        remaining = [file for file in self.files if file.get("id") not in priority_ids][:GROUPED_REMAINING_LIMIT]
        for file in remaining:
            grouped.setdefault(file.get("type") or "other", []).append(file)
        for group in grouped.values():
            group.sort(key=_timestamp_key, reverse=True)
        self._grouped.set(_GROUPED_KEY, grouped)
        return grouped

    async def delete(self, output_id: str) -> bool:
        """Remove locally first; a failed server delete is logged and not rolled back."""
        self.files = [file for file in self.files if file.get("id") != output_id]
        self.priority_files = [file for file in self.priority_files if file.get("id") != output_id]
        self.parser.discard(output_id)
        self._grouped.clear()
        try:
            await self.client.delete_output(output_id)
        except ApiError as exc:
            logger.error("Error deleting output file %s: %s", output_id, exc)
            return False
        return True
