"""Small TTL cache with an injectable clock."""

from __future__ import annotations

import time
from collections import OrderedDict
from typing import Callable, Generic, Optional, TypeVar, Union

ValueT = TypeVar("ValueT")

_MISSING = object()


class TTLCache(Generic[ValueT]):
    """Entries expire ``ttl`` seconds after they were stored.

    With ``capacity`` set, the least recently used entry is evicted once the
    cache is full.
    """

    def __init__(
        self,
        ttl: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        capacity: Optional[int] = None,
    ) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        if capacity is not None and capacity <= 0:
            raise ValueError("capacity must be positive")
        self.ttl = ttl
        self.capacity = capacity
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, ValueT]] = OrderedDict()

    def __len__(self) -> int:
        self._purge_expired()
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def get(self, key: str, default: Union[ValueT, object, None] = None):
        entry = self._entries.get(key)
        if entry is None:
            return default
        stored_at, value = entry
        if self._clock() - stored_at >= self.ttl:
            del self._entries[key]
            return default
        self._entries.move_to_end(key)
        return value

    def set(self, key: str, value: ValueT) -> None:
        self._entries[key] = (self._clock(), value)
        self._entries.move_to_end(key)
        if self.capacity is not None:
            while len(self._entries) > self.capacity:
                self._entries.popitem(last=False)

    def invalidate(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def invalidate_matching(self, predicate: Union[str, Callable[[str], bool]]) -> int:
        """Drop every key containing ``predicate`` (case-insensitive) or accepted by it."""
        if isinstance(predicate, str):
            needle = predicate.lower()

            def matches(key: str) -> bool:
                return needle in key.lower()

        else:
            matches = predicate
        doomed = [key for key in self._entries if matches(key)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()

    def _purge_expired(self) -> None:
        now = self._clock()
        expired = [key for key, (stored_at, _) in self._entries.items() if now - stored_at >= self.ttl]
        for key in expired:
            del self._entries[key]
