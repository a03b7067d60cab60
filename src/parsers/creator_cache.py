"""Bounded principal → CreatorPerformance cache for the recent-tokens sync.

Records are replaced wholesale; a new token from a creator invalidates
that creator's record explicitly.
"""

import time
from collections import OrderedDict
from dataclasses import dataclass

from src.parsers.odin.models import CreatorPerformance


@dataclass(frozen=True)
class CachedCreator:
    performance: CreatorPerformance
    version: int
    computed_at: float


class CreatorCache:
    """LRU cache; the least recently used principal is evicted past ``max_size``."""

    def __init__(self, max_size: int = 500, clock=time.monotonic) -> None:
        self._max_size = max(1, max_size)
        self._clock = clock
        self._entries: OrderedDict[str, CachedCreator] = OrderedDict()
        self._version = 0

    def get(self, principal: str) -> CachedCreator | None:
        entry = self._entries.get(principal)
        if entry is not None:
            self._entries.move_to_end(principal)
        return entry

    def put(self, principal: str, performance: CreatorPerformance) -> CachedCreator:
        self._version += 1
        entry = CachedCreator(performance, self._version, self._clock())
        self._entries[principal] = entry
        self._entries.move_to_end(principal)
        while len(self._entries) > self._max_size:
            self._entries.popitem(last=False)
        return entry

    def invalidate(self, principal: str) -> bool:
        return self._entries.pop(principal, None) is not None

    def invalidate_many(self, principals: set[str]) -> int:
        return sum(1 for p in principals if self.invalidate(p))

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, principal: object) -> bool:
        return principal in self._entries

    def __len__(self) -> int:
        return len(self._entries)
