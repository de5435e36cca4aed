"""
Bounded cache for AI judgments.

Keyed by (normalized query, sorted candidate ids). LRU capacity management
with optional TTL freshness; hit/miss/eviction counters for observability.
"""

import logging
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Hashable, Optional, Sequence, Tuple

from ..index.tokenizer import normalize_query
from ..models import SearchResult

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, Tuple[str, ...]]


def make_cache_key(query: str, candidates: Sequence[SearchResult]) -> CacheKey:
    """Key for one (query, candidate set) pair; candidate order does not matter."""
    return normalize_query(query), tuple(sorted(r.document.id for r in candidates))


class JudgmentCache:
    """
    LRU + TTL cache.

    Args:
        max_entries: Capacity; least recently used entry is evicted beyond it
        ttl_seconds: Entry lifetime, 0 disables expiry
        clock: Time source (seconds), injectable for tests
    """

    def __init__(
        self,
        max_entries: int = 256,
        ttl_seconds: float = 0.0,
        clock: Optional[Callable[[], float]] = None,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self.clock = clock or time.monotonic
        self._entries: "OrderedDict[Hashable, Tuple[float, Any]]" = OrderedDict()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def _expired(self, stored_at: float) -> bool:
        return self.ttl_seconds > 0 and self.clock() - stored_at > self.ttl_seconds

    def get(self, key: Hashable) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        stored_at, value = entry
        if self._expired(stored_at):
            del self._entries[key]
            self.misses += 1
            return None

        self._entries.move_to_end(key)
        self.hits += 1
        return value

    def put(self, key: Hashable, value: Any) -> None:
        self._entries[key] = (self.clock(), value)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            self.evictions += 1
            logger.debug(f"AI cache evicted {evicted!r}")

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not self._expired(entry[0])

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, int]:
        return {
            "entries": len(self._entries),
            "max_entries": self.max_entries,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
        }
