"""Time-bounded in-memory cache shared by the metadata, price and gas layers."""

from __future__ import annotations

import time
from collections.abc import Callable, Hashable
from typing import Generic, TypeVar

V = TypeVar("V")


class TTLCache(Generic[V]):
    """Dict-backed cache whose entries expire ``ttl`` seconds after insertion.

    Reads never return an expired entry; it is dropped on the read that finds
    it. Every operation is a single dict call, so concurrent tasks at worst
    duplicate a fetch. The clock is injectable for deterministic tests.
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[Hashable, tuple[float, V]] = {}

    def get(self, key: Hashable) -> V | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    def set(self, key: Hashable, value: V) -> None:
        self._entries[key] = (self._clock() + self.ttl, value)

    def pop(self, key: Hashable) -> V | None:
        entry = self._entries.pop(key, None)
        return entry[1] if entry else None

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [k for k, (expires_at, _) in list(self._entries.items()) if now >= expires_at]
        for key in expired:
            self._entries.pop(key, None)
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        self.purge_expired()
        return len(self._entries)
