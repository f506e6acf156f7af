"""In-memory chart cache.

This cache is process-local. It is safe for concurrent access from threads
inside the same Python process, but it is not shared across workers/instances.
In distributed environments (multiple processes, containers, or machines),
implement ``ChartStore`` on top of an external backend (e.g. Redis) if you need
global coherence.

Entries are never refreshed on read: an entry older than the retention window
is stale, is ignored by callers and is dropped by the periodic sweep.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

DEFAULT_RETENTION_SECONDS = 30 * 24 * 3600


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    saved_at: float


class ChartStore(Protocol):
    def get(self, key: str) -> Optional[CacheEntry]: ...

    def set(self, key: str, value: Any) -> CacheEntry: ...

    def is_stale(self, entry: CacheEntry) -> bool: ...


class TTLChartCache:
    def __init__(
        self,
        retention_seconds: float = DEFAULT_RETENTION_SECONDS,
        maxsize: int = 0,
        sweep_interval_seconds: int = 60,
        time_func: Callable[[], float] = time.time,
    ):
        self._store: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.RLock()
        self._time_func = time_func
        self.retention_seconds = retention_seconds
        self.maxsize = maxsize
        self._sweep_interval_seconds = sweep_interval_seconds
        self._last_sweep_at = self._time_func()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def _is_stale_at(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.saved_at > self.retention_seconds

    def _cleanup_stale(self, now: float) -> int:
        stale_keys = [key for key, entry in self._store.items() if self._is_stale_at(entry, now)]
        for key in stale_keys:
            self._store.pop(key, None)
        return len(stale_keys)

    def _maybe_sweep(self, now: float) -> None:
        if now - self._last_sweep_at >= self._sweep_interval_seconds:
            self._cleanup_stale(now)
            self._last_sweep_at = now

    def sweep(self) -> int:
        """Force a full cleanup pass and return the number of removed keys."""
        with self._lock:
            now = self._time_func()
            removed = self._cleanup_stale(now)
            self._last_sweep_at = now
            return removed

    def is_stale(self, entry: CacheEntry) -> bool:
        return self._is_stale_at(entry, self._time_func())

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the stored entry, stale or not; callers decide with ``is_stale``."""
        with self._lock:
            self._maybe_sweep(self._time_func())
            return self._store.get(key)

    def set(self, key: str, value: Any) -> CacheEntry:
        with self._lock:
            now = self._time_func()
            self._maybe_sweep(now)
            entry = CacheEntry(key=key, value=value, saved_at=now)
            self._store.pop(key, None)
            self._store[key] = entry
            if self.maxsize > 0:
                while len(self._store) > self.maxsize:
                    self._store.popitem(last=False)
            return entry

    def clear(self) -> None:
        with self._lock:
            self._store.clear()


def get_fresh(store: ChartStore, key: str) -> Optional[CacheEntry]:
    entry = store.get(key)
    if entry is None or store.is_stale(entry):
        return None
    return entry
