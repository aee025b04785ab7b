"""Shared plumbing for the cached third-party lookups behind the dashboard."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, Hashable, Optional, Tuple, TypeVar

V = TypeVar("V")


@dataclass(slots=True)
class ProviderResult:
    """Payload for the caller to render, with the status it should be sent with."""

    payload: Dict[str, Any]
    status_code: int = 200
    from_cache: bool = field(default=False, compare=False)


class TTLCache(Generic[V]):
    """Time-based revalidation: entries older than ``ttl_seconds`` are dropped on read."""

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int = 256,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[float, V]] = {}

    def get(self, key: Hashable) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None
        return value

    def set(self, key: Hashable, value: V) -> None:
        if key not in self._entries and len(self._entries) >= self.max_entries:
            # dicts keep insertion order, so the first key is the oldest write
            del self._entries[next(iter(self._entries))]
        self._entries[key] = (self._clock(), value)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
