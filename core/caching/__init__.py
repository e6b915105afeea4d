"""
DOS Core Caching — Reconciliation Result Cache
================================================
Optional read-through cache for replay results.

Doctrine: Cache is disposable — a replay is always the source of truth.
Entries are keyed by the content fingerprint of the replay inputs, so
any change to locations, products, events or policy yields a new key
and a stale result can never be served.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from core.caching.fingerprint import canonical_serialize, compute_fingerprint


# ══════════════════════════════════════════════════════════════
# CACHE STATISTICS
# ══════════════════════════════════════════════════════════════

@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    invalidations: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "invalidations": self.invalidations,
            "hit_rate": round(self.hit_rate, 4),
        }


# ══════════════════════════════════════════════════════════════
# RECONCILIATION CACHE (LRU, fingerprint-keyed)
# ══════════════════════════════════════════════════════════════

class ReconciliationCache:
    """
    LRU cache of replay results keyed by input fingerprint.

    Safe for concurrent callers: lookups and inserts hold a lock, the
    compute callback does not (two callers may replay the same inputs
    at once; both get equal results).
    """

    def __init__(self, max_size: int = 32) -> None:
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}.")
        self._max_size = max_size
        self._entries: OrderedDict[str, Any] = OrderedDict()
        self._stats = CacheStats()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            if key not in self._entries:
                self._stats.misses += 1
                return None
            self._entries.move_to_end(key)
            self._stats.hits += 1
            return self._entries[key]

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            if key not in self._entries and len(self._entries) >= self._max_size:
                self._entries.popitem(last=False)
                self._stats.evictions += 1
            self._entries[key] = value
            self._entries.move_to_end(key)

    def get_or_compute(self, key: str, compute: Callable[[], Any]) -> Any:
        cached = self.get(key)
        if cached is not None:
            return cached
        value = compute()
        self.put(key, value)
        return value

    def clear(self) -> None:
        with self._lock:
            self._stats.invalidations += len(self._entries)
            self._entries.clear()

    @property
    def stats(self) -> CacheStats:
        return self._stats

    @property
    def size(self) -> int:
        return len(self._entries)


__all__ = [
    "CacheStats",
    "ReconciliationCache",
    "canonical_serialize",
    "compute_fingerprint",
]
