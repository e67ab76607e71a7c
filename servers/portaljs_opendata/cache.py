#!/usr/bin/env python3
"""In-process TTL cache for idempotent portal reads.

Entries expire lazily: an expired entry reads as absent and is only
replaced when the next successful call for the same key stores a new one.
Nothing sweeps the map, so it grows for the lifetime of the process.
"""

import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

DEFAULT_TTL_MS = 300_000


def ms_clock() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def make_cache_key(endpoint: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """Build ``endpoint:{canonical json}`` with object keys sorted at every level."""
    canonical = json.dumps(
        dict(params) if params else {},
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    return f"{endpoint}:{canonical}"


@dataclass(frozen=True)
class CacheEntry:
    key: str
    payload: Any
    stored_at_ms: int


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    sets: int = 0
    expired_reads: int = 0


class TTLCache:
    """Unbounded map of cache entries with a per-read TTL check."""

    def __init__(
        self,
        ttl_ms: int = DEFAULT_TTL_MS,
        clock: Callable[[], int] = ms_clock,
        enabled: bool = True,
    ) -> None:
        self.ttl_ms = int(ttl_ms)
        self.clock = clock
        self._enabled = enabled
        self._store: Dict[str, CacheEntry] = {}
        self._stats = CacheStats()

    @property
    def enabled(self) -> bool:
        return self._enabled and self.ttl_ms > 0

    def is_valid(self, entry: CacheEntry) -> bool:
        return self.clock() - entry.stored_at_ms < self.ttl_ms

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for ``key`` if it is still fresh.

        Reading never refreshes the entry's timestamp.
        """
        if not self.enabled:
            self._stats.misses += 1
            return None

        entry = self._store.get(key)
        if entry is None:
            self._stats.misses += 1
            return None

        if not self.is_valid(entry):
            self._stats.misses += 1
            self._stats.expired_reads += 1
            return None

        self._stats.hits += 1
        return entry

    def put(self, key: str, payload: Any) -> Optional[CacheEntry]:
        """Store ``payload`` under ``key`` stamped with the current time."""
        if not self.enabled:
            return None

        entry = CacheEntry(key=key, payload=payload, stored_at_ms=self.clock())
        self._store[key] = entry
        self._stats.sets += 1
        return entry

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)

    def stats(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "ttl_ms": self.ttl_ms,
            "size": len(self._store),
            "hits": self._stats.hits,
            "misses": self._stats.misses,
            "sets": self._stats.sets,
            "expired_reads": self._stats.expired_reads,
        }
