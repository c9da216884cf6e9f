"""
app/services/cache.py — Process-wide Memory Cache
=================================================
Key → value store with a per-entry absolute expiration set at write time,
backed by a cachetools TLRUCache.

Contract:
  get(key)            → (value, found); expired entries count as not found
  set(key, value, ttl)

There is no invalidation API. Entries expire; writes to storage never
evict a matching entry. cachetools caches are not thread-safe, so each
get/set runs under the lock. Two concurrent misses on the same key may
both recompute and the last set wins.

The clock is handed to cachetools as its timer so tests can advance time
deterministically.
"""

import logging
import time
from datetime import timedelta
from threading import Lock
from typing import Any, Callable, Union

from cachetools import TLRUCache

log = logging.getLogger("cv.cache")

DEFAULT_MAXSIZE = 128


def _expires_at(key: str, entry: tuple[Any, float], now: float) -> float:
    return now + entry[1]


class MemoryCache:

    def __init__(self, clock: Callable[[], float] = time.monotonic,
                 maxsize: int = DEFAULT_MAXSIZE):
        self._entries = TLRUCache(maxsize=maxsize, ttu=_expires_at, timer=clock)
        self._lock = Lock()

    def get(self, key: str) -> tuple[Any, bool]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                expired = self._entries.expire()
                if any(k == key for k, _ in expired):
                    log.debug(f"Cache entry '{key}' expired")
                return None, False
            return entry[0], True

    def set(self, key: str, value: Any, ttl: Union[timedelta, float]) -> None:
        seconds = ttl.total_seconds() if isinstance(ttl, timedelta) else float(ttl)
        with self._lock:
            self._entries[key] = (value, seconds)

    def __len__(self) -> int:
        with self._lock:
            self._entries.expire()
            return len(self._entries)
