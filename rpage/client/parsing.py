"""Deferred parsing of artifact payloads.

Callers get a cheap placeholder immediately; the real JSON decode happens on a
background asyncio task, screenshots first.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import json
import logging
from typing import Any, Optional

from rpage.domain.outputs.models import SCREENSHOT_TYPE

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 20
PRIORITY_HIGH = 1
PRIORITY_MEDIUM = 2


def make_preview(file: dict[str, Any]) -> dict[str, Any]:
    data = file.get("data")
    return {
        "id": file.get("id"),
        "type": file.get("type"),
        "name": file.get("name"),
        "timestamp": file.get("timestamp"),
        "preview": data[:PREVIEW_CHARS] + "..." if data else None,
        "is_preview": True,
    }


def parse_data(data: str) -> Any:
    try:
        return json.loads(data)
    except ValueError:
        return data


class ParseQueue:
    def __init__(self, *, interval: float = 0.005) -> None:
        self.interval = interval
        self._parsed: dict[str, Any] = {}
        self._heap: list[tuple[int, int, dict[str, Any]]] = []
        self._queued: set[str] = set()
        self._counter = itertools.count()
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> int:
        return len(self._queued)

    def is_parsed(self, file_id: str) -> bool:
        return file_id in self._parsed

    def parsed(self, file_id: str, default: Any = None) -> Any:
        return self._parsed.get(file_id, default)

    def get(self, file: dict[str, Any]) -> Any:
        """Parsed value when ready, otherwise a placeholder (and the parse gets queued)."""
        if not file.get("data"):
            return None
        file_id = str(file.get("id"))
        if file_id in self._parsed:
            return self._parsed[file_id]
        self.enqueue(file)
        return make_preview(file)

    def enqueue(self, file: dict[str, Any]) -> None:
        data = file.get("data")
        if not data:
            return
        file_id = str(file.get("id"))
        if file_id in self._parsed or file_id in self._queued:
            return
        if not data.lstrip().startswith(("{", "[")):
            self._parsed[file_id] = data
            return
        priority = PRIORITY_HIGH if file.get("type") == SCREENSHOT_TYPE else PRIORITY_MEDIUM
        heapq.heappush(self._heap, (priority, next(self._counter), file))
        self._queued.add(file_id)
        self._ensure_worker()

    def process_next(self) -> bool:
        while self._heap:
            _, _, file = heapq.heappop(self._heap)
            file_id = str(file.get("id"))
            if file_id not in self._queued:
                continue
            self._queued.discard(file_id)
            self._parsed[file_id] = parse_data(file["data"])
            return True
        return False

    def drain_now(self) -> int:
        processed = 0
        while self.process_next():
            processed += 1
        return processed

    async def join(self) -> None:
        while self._task is not None and not self._task.done():
            await asyncio.shield(self._task)

    def discard(self, file_id: str) -> None:
        self._parsed.pop(file_id, None)
        self._queued.discard(file_id)

    def clear(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._heap.clear()
        self._queued.clear()
        self._parsed.clear()

    def _ensure_worker(self) -> None:
        if self._task is not None and not self._task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: callers drain with drain_now().
            return
        self._task = loop.create_task(self._drain())

    async def _drain(self) -> None:
        while self.process_next():
            await asyncio.sleep(self.interval)
        logger.debug("Parse queue drained (%s parsed)", len(self._parsed))
