# pipeline_sdk/adapters/memory.py
# SPDX-License-Identifier: Apache-2.0

"""
In-process reference cache/counter adapter.

Characteristics:
    - Per-process only; NOT shared/distributed.
    - TTLs in milliseconds, measured on a monotonic clock.
    - `increment` is atomic under a threading lock, so it stays correct when
      the sync bridge drives pipelines from worker threads.
    - Values are deep-copied on the way in and out, so callers never share
      mutable state with the store (the same contract a networked cache gives).
    - Opportunistic pruning; callers must not rely on strong eviction.

Intended for development and tests. Use a real shared store in production.
"""

from __future__ import annotations

import copy
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

_PRUNE_THRESHOLD = 4096


class InMemoryCache:
    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._store: Dict[str, Tuple[Optional[float], Any]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def _expiry(self, ttl_ms: Optional[int]) -> Optional[float]:
        if ttl_ms is None or ttl_ms <= 0:
            return None
        return self._clock() + ttl_ms / 1000.0

    def _live(self, key: str) -> Optional[Tuple[Optional[float], Any]]:
        # Caller must hold self._lock.
        item = self._store.get(key)
        if item is None:
            return None
        exp, _ = item
        if exp is not None and self._clock() >= exp:
            del self._store[key]
            return None
        return item

    def _prune(self) -> None:
        # Caller must hold self._lock.
        if len(self._store) <= _PRUNE_THRESHOLD:
            return
        now = self._clock()
        for k, (exp, _) in list(self._store.items()):
            if exp is not None and now >= exp:
                del self._store[k]

    async def get(self, key: str) -> Optional[Any]:
        with self._lock:
            item = self._live(key)
            if item is None:
                return None
            return copy.deepcopy(item[1])

    async def set(self, key: str, value: Any, ttl_ms: Optional[int] = None) -> None:
        with self._lock:
            self._store[key] = (self._expiry(ttl_ms), copy.deepcopy(value))
            self._prune()

    async def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    async def increment(self, key: str, ttl_ms: int) -> int:
        with self._lock:
            item = self._live(key)
            if item is None:
                self._store[key] = (self._expiry(ttl_ms), 1)
                self._prune()
                return 1
            exp, value = item
            count = int(value) + 1
            self._store[key] = (exp, count)
            return count

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)


__all__ = ["InMemoryCache"]
