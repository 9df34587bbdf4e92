#!/usr/bin/env python3
import time
from typing import Callable, Dict, Generic, Optional, Tuple, TypeVar

V = TypeVar('V')


class TTLCache(Generic[V]):
    """In-memory map whose entries expire ``ttl`` seconds after being written.

    Not locked: two concurrent writers for the same key simply overwrite
    each other.
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[V, float]] = {}

    def get(self, key: str) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, stored_at = entry
        if self._clock() - stored_at >= self.ttl:
            return None
        return value

    def set(self, key: str, value: V) -> None:
        self._entries[key] = (value, self._clock())

    def clear(self) -> None:
        self._entries.clear()
