"""Short-lived memo for expensive local computations"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional


@dataclass
class CacheEntry:
    """A memoized value and when it was computed

    Attributes:
        value: The memoized result
        computed_at_ms: Wall-clock epoch millis at computation time
    """
    value: Any
    computed_at_ms: int


class TimedMemo:
    """Single-slot memo that expires by age only"""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.time):
        self.ttl_ms = int(ttl_seconds * 1000)
        self.clock = clock
        self.entry: Optional[CacheEntry] = None

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def is_fresh(self) -> bool:
        if self.entry is None:
            return False
        return (self._now_ms() - self.entry.computed_at_ms) < self.ttl_ms

    def get(self) -> Optional[Any]:
        """Return the memoized value while it is fresh, else None"""
        if self.is_fresh():
            return self.entry.value
        return None

    def put(self, value: Any):
        self.entry = CacheEntry(value=value, computed_at_ms=self._now_ms())

    def clear(self):
        self.entry = None
